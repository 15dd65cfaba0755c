# Generated migration for StampBalance, StampHistoryEntry and RedemptionToken

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StampBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_id", models.CharField(db_index=True, max_length=64, verbose_name="cliente")),
                ("cafe_id", models.CharField(db_index=True, max_length=64, verbose_name="café")),
                (
                    "count",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Carimbos disponíveis para resgate",
                        verbose_name="carimbos",
                    ),
                ),
                (
                    "total_earned",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Total de carimbos já acumulados (nunca decresce)",
                        verbose_name="total acumulado",
                    ),
                ),
                (
                    "total_used",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Total de carimbos já resgatados (nunca decresce)",
                        verbose_name="total resgatado",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="atualizado em")),
            ],
            options={
                "verbose_name": "cartão de carimbos",
                "verbose_name_plural": "cartões de carimbos",
                "db_table": "stampman_balance",
                "ordering": ["-updated_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer_id", "cafe_id"),
                        name="stampman_unique_balance",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("count__gte", 0)),
                        name="stampman_balance_count_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("count", models.F("total_earned") - models.F("total_used"))
                        ),
                        name="stampman_balance_count_matches_totals",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="StampHistoryEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "order_id",
                    models.CharField(
                        blank=True,
                        help_text="Pedido que originou o lançamento",
                        max_length=64,
                        verbose_name="pedido",
                    ),
                ),
                (
                    "entry_type",
                    models.CharField(
                        choices=[("earn", "Acúmulo"), ("use", "Resgate")],
                        max_length=10,
                        verbose_name="tipo",
                    ),
                ),
                ("amount", models.PositiveIntegerField(verbose_name="quantidade")),
                (
                    "source",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("order", "Pedido"),
                            ("customer_scan", "Leitura do cliente"),
                            ("merchant_manual", "Liberado pelo lojista"),
                        ],
                        help_text="Vazio para resgates",
                        max_length=20,
                        verbose_name="origem",
                    ),
                ),
                (
                    "merchant_id",
                    models.CharField(
                        blank=True,
                        help_text="Lojista/funcionário que liberou o carimbo",
                        max_length=64,
                        verbose_name="lojista",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        verbose_name="criado em",
                    ),
                ),
                (
                    "balance",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="history",
                        to="stampman.stampbalance",
                        verbose_name="cartão",
                    ),
                ),
            ],
            options={
                "verbose_name": "lançamento de carimbo",
                "verbose_name_plural": "lançamentos de carimbo",
                "db_table": "stampman_history",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["balance", "entry_type", "created_at"],
                        name="stampman_history_guard_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="stampman_history_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RedemptionToken",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("cafe_id", models.CharField(max_length=64, verbose_name="café")),
                (
                    "code",
                    models.CharField(
                        help_text="Sem caracteres ambíguos (0/O/1/I)",
                        max_length=12,
                        verbose_name="código",
                    ),
                ),
                ("issued_by", models.CharField(max_length=64, verbose_name="emitido por")),
                ("issued_at", models.DateTimeField(verbose_name="emitido em")),
                ("expires_at", models.DateTimeField(verbose_name="expira em")),
                ("used_by", models.CharField(blank=True, max_length=64, null=True, verbose_name="usado por")),
                ("used_at", models.DateTimeField(blank=True, null=True, verbose_name="usado em")),
            ],
            options={
                "verbose_name": "token de carimbo",
                "verbose_name_plural": "tokens de carimbo",
                "db_table": "stampman_token",
                "ordering": ["-issued_at", "-id"],
                "indexes": [
                    models.Index(fields=["cafe_id", "expires_at"], name="stampman_token_active_idx"),
                    models.Index(fields=["cafe_id", "code"], name="stampman_token_code_idx"),
                ],
            },
        ),
    ]
