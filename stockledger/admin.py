"""
Stockledger Admin.

Provides read-only views of the ledger for auditing:
- Location: list + edit
- StockBalance: read-only (sku, location, on hand, reserved, available)
- Movement: read-only audit trail
- Lot / SerialUnit: provenance (read-only)
- TransferOrder: read-only with "commit" / "cancel" actions
- StockCount: read-only with lines
- ReorderPolicy: editable replenishment parameters
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stockledger.exceptions import StockError
from stockledger.models import (
    Location,
    Lot,
    LotLocation,
    Movement,
    ReorderPolicy,
    SerialEvent,
    SerialUnit,
    StockBalance,
    StockCount,
    StockCountLine,
    TransferLine,
    TransferOrder,
    TransferStatus,
)

logger = logging.getLogger(__name__)


class ReadOnlyAdminMixin:
    """Ledger rows only change through the stock service."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# LOCATION ADMIN
# =========================================================================

@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    """Location admin — editable."""

    list_display = ['code', 'name', 'kind', 'is_default']
    list_filter = ['kind']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']


# =========================================================================
# BALANCE / MOVEMENT ADMIN (read-only)
# =========================================================================

@admin.register(StockBalance)
class StockBalanceAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Balance admin — read-only. Stock only changes via Stock service."""

    list_display = ['sku', 'location', 'quantity_on_hand', 'quantity_reserved',
                    'available_display', 'average_cost_display', 'updated_at']
    list_filter = ['location']
    search_fields = ['sku']
    readonly_fields = ['sku', 'location', 'quantity_on_hand', 'quantity_reserved',
                       'received_quantity', 'received_value', 'version', 'metadata',
                       'created_at', 'updated_at']
    ordering = ['location', 'sku']

    @admin.display(description=_('Disponível'))
    def available_display(self, obj):
        return obj.available

    @admin.display(description=_('Custo médio'))
    def average_cost_display(self, obj):
        return round(obj.average_unit_cost, 4)


@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['created_at', 'sku', 'location', 'delta', 'reason_code',
                    'reference_id', 'balance_after', 'created_by']
    list_filter = ['reason_code', 'location', 'created_at']
    search_fields = ['sku', 'reference_id']
    readonly_fields = ['sku', 'location', 'balance', 'delta', 'reason_code', 'reference_id',
                       'unit_cost', 'lot', 'balance_after', 'notes', 'metadata',
                       'created_at', 'created_by']
    date_hierarchy = 'created_at'


# =========================================================================
# LOT / SERIAL ADMIN
# =========================================================================

class LotLocationInline(admin.TabularInline):
    model = LotLocation
    extra = 0
    can_delete = False
    readonly_fields = ['location', 'quantity', 'updated_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Lot)
class LotAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Lot admin — lot traceability."""

    list_display = ['lot_number', 'sku', 'remaining_quantity', 'initial_quantity',
                    'unit_cost', 'expiry_date', 'status', 'is_expired_display']
    list_filter = ['status', 'expiry_date']
    search_fields = ['lot_number', 'sku', 'supplier']
    readonly_fields = ['sku', 'lot_number', 'initial_quantity', 'remaining_quantity',
                       'unit_cost', 'manufacturing_date', 'expiry_date', 'status',
                       'supplier', 'created_at']
    inlines = [LotLocationInline]

    @admin.display(description=_('Vencido?'), boolean=True)
    def is_expired_display(self, obj):
        return obj.is_expired


class SerialEventInline(admin.TabularInline):
    model = SerialEvent
    extra = 0
    can_delete = False
    readonly_fields = ['status', 'location', 'note', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SerialUnit)
class SerialUnitAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['serial_number', 'sku', 'lot_number', 'location', 'status', 'updated_at']
    list_filter = ['status', 'location']
    search_fields = ['serial_number', 'sku', 'lot_number']
    readonly_fields = ['sku', 'serial_number', 'lot_number', 'location', 'status',
                       'created_at', 'updated_at']
    inlines = [SerialEventInline]


# =========================================================================
# TRANSFER ADMIN (read-only with commit/cancel actions)
# =========================================================================

class TransferLineInline(admin.TabularInline):
    model = TransferLine
    extra = 0
    can_delete = False
    readonly_fields = ['sku', 'quantity', 'lot_numbers', 'serial_numbers']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(TransferOrder)
class TransferOrderAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Transfer admin — read-only with commit/cancel actions."""

    list_display = ['id', 'from_location', 'to_location', 'status',
                    'requested_by', 'created_at', 'processed_at']
    list_filter = ['status', 'from_location', 'to_location']
    readonly_fields = ['from_location', 'to_location', 'status', 'requested_by',
                       'processed_by', 'notes', 'cancel_reason', 'created_at', 'processed_at']
    inlines = [TransferLineInline]
    actions = ['commit_transfers', 'cancel_transfers']

    def _run(self, request, queryset, operation, **kwargs):
        count = 0
        for order in queryset.filter(status=TransferStatus.PENDING):
            try:
                operation(order.pk, request.user, **kwargs)
                count += 1
            except StockError as exc:
                logger.warning("transfer admin: %s failed for #%s: %s",
                               operation.__name__, order.pk, exc)
                self.message_user(request, f"#{order.pk}: {exc}", level='error')
        return count

    @admin.action(description=_('Efetivar transferências selecionadas'))
    def commit_transfers(self, request, queryset):
        from stockledger import stock

        count = self._run(request, queryset, stock.commit_transfer)
        self.message_user(request, _('{count} transferência(s) efetivada(s).').format(count=count))

    @admin.action(description=_('Cancelar transferências selecionadas'))
    def cancel_transfers(self, request, queryset):
        from stockledger import stock

        count = self._run(request, queryset, stock.cancel_transfer, reason='Cancelada via admin')
        self.message_user(request, _('{count} transferência(s) cancelada(s).').format(count=count))


# =========================================================================
# COUNT ADMIN
# =========================================================================

class StockCountLineInline(admin.TabularInline):
    model = StockCountLine
    extra = 0
    can_delete = False
    readonly_fields = ['sku', 'system_quantity', 'counted_quantity', 'difference',
                       'notes', 'movement']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(StockCount)
class StockCountAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['id', 'location', 'reference', 'counted_by', 'created_at']
    list_filter = ['location']
    search_fields = ['reference']
    readonly_fields = ['location', 'reference', 'counted_by', 'created_at']
    inlines = [StockCountLineInline]


# =========================================================================
# REORDER POLICY ADMIN
# =========================================================================

@admin.register(ReorderPolicy)
class ReorderPolicyAdmin(admin.ModelAdmin):
    """ReorderPolicy admin — replenishment parameters per SKU."""

    list_display = ['sku', 'location', 'lead_time_days', 'safety_days',
                    'is_active', 'last_triggered_at']
    list_filter = ['is_active', 'location']
    search_fields = ['sku']
    readonly_fields = ['last_triggered_at', 'created_at', 'updated_at']
