from django.contrib import admin

from .models import Transaction, Wallet


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ("user", "balance_toman", "balance_usdt", "updated_at")
    search_fields = ("user__email", "user__username")
    raw_id_fields = ("user",)
    # موجودی فقط از مسیر دفتر کل تغییر می‌کند
    readonly_fields = ("balance_toman", "balance_usdt", "updated_at")


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "type", "amount", "currency", "status", "gateway", "created_at")
    list_filter = ("type", "status", "gateway", "currency", "created_at")
    search_fields = ("id", "authority", "ref_id", "user__email")
    raw_id_fields = ("user", "tournament")
    readonly_fields = [f.name for f in Transaction._meta.fields]

    def has_add_permission(self, request):
        return False
