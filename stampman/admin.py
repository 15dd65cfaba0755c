"""Stampman admin.

Read-only operator console. Ledger rows are only ever written by the
services; nothing here adds, edits or deletes balances or history.
"""

from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from stampman.models import RedemptionToken, StampBalance, StampEntryType, StampHistoryEntry


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# StampHistoryEntry Inline
# ===========================================


class StampHistoryInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = StampHistoryEntry
    extra = 0
    fields = ["created_at", "entry_type", "amount", "source", "order_id", "merchant_id"]
    readonly_fields = fields
    ordering = ["-created_at"]


# ===========================================
# StampBalance Admin
# ===========================================


@admin.register(StampBalance)
class StampBalanceAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "customer_id",
        "cafe_id",
        "count",
        "total_earned",
        "total_used",
        "updated_at",
    ]
    search_fields = ["customer_id", "cafe_id"]
    readonly_fields = ["customer_id", "cafe_id", "count", "total_earned", "total_used", "created_at", "updated_at"]
    inlines = [StampHistoryInline]


# ===========================================
# StampHistoryEntry Admin
# ===========================================


@admin.register(StampHistoryEntry)
class StampHistoryEntryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "created_at",
        "customer_id",
        "cafe_id",
        "amount_display",
        "source",
        "order_id",
        "merchant_id",
    ]
    list_filter = ["entry_type", "source"]
    search_fields = ["balance__customer_id", "balance__cafe_id", "order_id"]
    date_hierarchy = "created_at"
    list_select_related = ["balance"]

    def customer_id(self, obj):
        return obj.balance.customer_id

    customer_id.short_description = "Cliente"

    def cafe_id(self, obj):
        return obj.balance.cafe_id

    cafe_id.short_description = "Café"

    def amount_display(self, obj):
        if obj.entry_type == StampEntryType.EARN:
            return format_html('<span style="color:green">+{}</span>', obj.amount)
        return format_html('<span style="color:red">-{}</span>', obj.amount)

    amount_display.short_description = "Carimbos"


# ===========================================
# RedemptionToken Admin
# ===========================================


@admin.register(RedemptionToken)
class RedemptionTokenAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["cafe_id", "code", "issued_by", "issued_at", "status_badge", "used_by", "used_at"]
    list_filter = ["cafe_id"]
    search_fields = ["cafe_id", "code", "issued_by", "used_by"]

    def status_badge(self, obj):
        if obj.is_used:
            color, label = "#28a745", "Usado"
        elif obj.is_active_at(timezone.now()):
            color, label = "#007bff", "Ativo"
        else:
            color, label = "#6c757d", "Expirado"
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            color,
            label,
        )

    status_badge.short_description = "Status"
