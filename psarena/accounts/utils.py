# accounts/utils.py
import logging
import re
import secrets

from django.conf import settings
from zeep import Client

logger = logging.getLogger(__name__)

# پیام‌های کدهای برگشتی ملی‌پیامک
SMS_RETURN_MESSAGES = {
    0: "نام کاربری یا رمز عبور اشتباه است",
    1: "ارسال موفق",
    2: "اعتبار کافی نیست",
    3: "محدودیت در ارسال روزانه",
    4: "محدودیت در حجم ارسال",
    5: "شماره فرستنده معتبر نیست",
    6: "به‌روزرسانی سیستم",
    7: "متن حاوی کلمات فیلتر شده",
    9: "ارسال از خطوط اشتراکی امکان‌پذیر نیست",
    10: "کد متن پیش‌فرض تعریف نشده",
    -1: "خطای سرور",
    -2: "محدودیت تعداد ارسال در بازه زمانی",
    -7: "خطا در شماره فرستنده",
    -10: "لینک در متغیرها وجود دارد",
}

_DIGITS = str.maketrans("۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩", "01234567890123456789")


def _normalize_digits(s) -> str:
    if s is None:
        return ""
    return str(s).strip().translate(_DIGITS)


def normalize_phone(phone):
    """
    شماره موبایل ایران را به قالب 09xxxxxxxxx برمی‌گرداند؛ در غیر این صورت None.
    ورودی‌های +98، 0098 و 9xxxxxxxxx و ارقام فارسی پذیرفته می‌شوند.
    """
    digits = re.sub(r"\D", "", _normalize_digits(phone))
    if not digits:
        return None
    if digits.startswith("0098") and len(digits) == 14:
        digits = "0" + digits[4:]
    elif digits.startswith("98") and len(digits) == 12:
        digits = "0" + digits[2:]
    if len(digits) == 10 and digits.startswith("9"):
        digits = "0" + digits
    if len(digits) == 11 and digits.startswith("09"):
        return digits
    return None


def generate_otp_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def sms_return_message(code) -> str:
    try:
        return SMS_RETURN_MESSAGES.get(int(code), f"خطای ناشناخته ({code})")
    except (TypeError, ValueError):
        return f"خطای ناشناخته ({code})"


def send_verification_code(phone: str, code: str) -> bool:
    """
    در حالت لوکال/تست (DEBUG یا SMS_DRY_RUN):
      - پیامک واقعی ارسال نمی‌شود
      - کد در لاگ چاپ می‌شود
      - True برمی‌گرداند

    در حالت پروداکشن:
      - با الگوی (BodyId) ملی‌پیامک ارسال می‌شود
      - True/False بر اساس موفقیت ارسال
    """
    if settings.SMS_DRY_RUN or settings.DEBUG:
        logger.warning("[DEV SMS] OTP for %s: %s", phone, code)
        return True

    cfg = settings.MELIPAYAMAK
    username, password, body_id = cfg.get("USERNAME"), cfg.get("PASSWORD"), cfg.get("BODY_ID")
    if not (username and password and body_id):
        logger.error("SMS credentials are missing. Set MELIPAYAMAK_* env vars.")
        return False

    try:
        client = Client(cfg["WSDL"])
        # متن از الگوی BodyId می‌آید؛ text فقط متغیرهای {0}، {1}، ... است
        result = client.service.SendByBaseNumber(
            username=username,
            password=password,
            text=[str(code)],
            to=phone,
            bodyId=int(body_id),
        )
    except Exception as e:
        logger.exception("SMS provider error: %s", e)
        return False

    # مقدار برگشتی: recId (عدد بزرگ) در صورت موفقیت، در غیر این صورت کد خطا
    try:
        value = int(str(result).strip())
    except (TypeError, ValueError):
        logger.error("SMS provider returned an unexpected result: %r", result)
        return False

    if value > 20:
        logger.info("SMS sent via provider. phone=%s recId=%s", phone, value)
        return True

    logger.error("SMS provider rejected message. phone=%s code=%s (%s)", phone, value, sms_return_message(value))
    return False
