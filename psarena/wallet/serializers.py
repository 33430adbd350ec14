from rest_framework import serializers

from .models import Transaction
from .services import wallet_balances


class TransactionSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source="user_id", read_only=True)
    amount = serializers.SerializerMethodField()
    refId = serializers.CharField(source="ref_id", read_only=True)
    tournamentId = serializers.IntegerField(source="tournament_id", read_only=True, allow_null=True)
    prizePosition = serializers.IntegerField(source="prize_position", read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id", "userId", "amount", "currency", "type", "status", "gateway",
            "authority", "refId", "description", "metadata",
            "tournamentId", "prizePosition", "createdAt", "updatedAt",
        ]

    def get_amount(self, obj):
        # تومان بدون اعشار
        if obj.currency == "TOMAN":
            return str(int(obj.amount))
        return str(obj.amount)


class AdminTransactionSerializer(TransactionSerializer):
    user = serializers.SerializerMethodField()

    class Meta(TransactionSerializer.Meta):
        fields = TransactionSerializer.Meta.fields + ["user"]

    def get_user(self, obj):
        u = obj.user
        profile = getattr(u, "profile", None)
        toman, usdt = wallet_balances(u)
        return {
            "id": u.id,
            "email": u.email,
            "name": profile.name if profile else u.get_username(),
            "psnId": profile.psn_id if profile else None,
            "walletBalance": str(toman),
            "usdtBalance": str(usdt),
        }


class DepositSerializer(serializers.Serializer):
    amount = serializers.CharField(error_messages={"required": "Invalid amount", "blank": "Invalid amount"})


class AdminTransactionUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Transaction.Status.choices, required=False)
    metadata = serializers.DictField(required=False)
