"""
Initial migration for Stockledger models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockledger models: locations, balances, movements, lots, serials, transfers, counts, policies."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Identificador único (ex: loja-centro, deposito)', unique=True, verbose_name='Código')),
                ('name', models.CharField(help_text='Nome legível do local', max_length=100, verbose_name='Nome')),
                ('kind', models.CharField(choices=[('physical', 'Físico'), ('virtual', 'Virtual')], default='physical', max_length=20, verbose_name='Tipo')),
                ('is_default', models.BooleanField(default=False, help_text='Se True, este é o local padrão para recebimentos.', verbose_name='Local padrão')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Local',
                'verbose_name_plural': 'Locais',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='Lot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('lot_number', models.CharField(max_length=64, verbose_name='Número do Lote')),
                ('initial_quantity', models.PositiveIntegerField(verbose_name='Quantidade inicial')),
                ('remaining_quantity', models.PositiveIntegerField(verbose_name='Quantidade restante')),
                ('unit_cost', models.DecimalField(decimal_places=4, max_digits=14, verbose_name='Custo unitário')),
                ('manufacturing_date', models.DateField(blank=True, null=True, verbose_name='Data de Fabricação')),
                ('expiry_date', models.DateField(blank=True, db_index=True, help_text='Último dia em que o lote pode ser vendido/utilizado', null=True, verbose_name='Data de Validade')),
                ('status', models.CharField(choices=[('active', 'Ativo'), ('depleted', 'Esgotado'), ('expired', 'Vencido')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Fornecedor')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['created_at', 'lot_number'],
                'indexes': [models.Index(fields=['sku', 'status'], name='lot_sku_status_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('sku', 'lot_number'), name='unique_lot_number_per_sku'),
                    models.CheckConstraint(condition=models.Q(('remaining_quantity__lte', models.F('initial_quantity'))), name='lot_remaining_within_initial'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockBalance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('quantity_on_hand', models.IntegerField(default=0, verbose_name='Em estoque')),
                ('quantity_reserved', models.IntegerField(default=0, verbose_name='Reservado')),
                ('received_quantity', models.BigIntegerField(default=0, verbose_name='Quantidade recebida')),
                ('received_value', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=18, verbose_name='Valor recebido')),
                ('version', models.PositiveIntegerField(default=0, verbose_name='Versão')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='balances', to='stockledger.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Saldo',
                'verbose_name_plural': 'Saldos',
                'indexes': [models.Index(fields=['location', 'sku'], name='balance_location_sku_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('sku', 'location'), name='unique_balance_sku_location'),
                    models.CheckConstraint(condition=models.Q(('quantity_on_hand__gte', 0)), name='balance_on_hand_non_negative'),
                    models.CheckConstraint(condition=models.Q(('quantity_reserved__gte', 0), ('quantity_reserved__lte', models.F('quantity_on_hand'))), name='balance_reserved_within_on_hand'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('delta', models.IntegerField(help_text='Positivo = entrada, Negativo = saída', verbose_name='Variação')),
                ('reason_code', models.CharField(choices=[('sale', 'Venda'), ('return', 'Devolução'), ('receipt', 'Recebimento'), ('adjustment', 'Ajuste'), ('transfer_out', 'Transferência (saída)'), ('transfer_in', 'Transferência (entrada)'), ('count_correction', 'Correção de contagem')], db_index=True, max_length=20, verbose_name='Motivo')),
                ('reference_id', models.CharField(blank=True, db_index=True, default='', help_text='Ex: "venda:123", "transfer:8", "count:4"', max_length=100, verbose_name='Referência')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, help_text='Obrigatório para recebimentos', max_digits=14, null=True, verbose_name='Custo unitário')),
                ('balance_after', models.IntegerField(blank=True, null=True, verbose_name='Saldo após')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('balance', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.stockbalance', verbose_name='Saldo')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.location', verbose_name='Local')),
                ('lot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.lot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['sku', 'location', 'created_at'], name='movement_sku_loc_created_idx'),
                    models.Index(fields=['reference_id', 'reason_code'], name='movement_ref_reason_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LotLocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='Quantidade')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lot_slices', to='stockledger.location', verbose_name='Local')),
                ('lot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='slices', to='stockledger.lot', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Lote por local',
                'verbose_name_plural': 'Lotes por local',
                'constraints': [
                    models.UniqueConstraint(fields=('lot', 'location'), name='unique_lot_slice_per_location'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SerialUnit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('serial_number', models.CharField(max_length=100, verbose_name='Número de Série')),
                ('lot_number', models.CharField(blank=True, default='', max_length=64, verbose_name='Lote')),
                ('status', models.CharField(choices=[('in_stock', 'Em estoque'), ('reserved', 'Reservado'), ('sold', 'Vendido'), ('defective', 'Defeituoso'), ('returned', 'Devolvido')], db_index=True, default='in_stock', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='serials', to='stockledger.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Número de Série',
                'verbose_name_plural': 'Números de Série',
                'constraints': [
                    models.UniqueConstraint(fields=('sku', 'serial_number'), name='unique_serial_per_sku'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SerialEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('in_stock', 'Em estoque'), ('reserved', 'Reservado'), ('sold', 'Vendido'), ('defective', 'Defeituoso'), ('returned', 'Devolvido')], max_length=20)),
                ('note', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='stockledger.location')),
                ('serial', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to='stockledger.serialunit')),
            ],
            options={
                'verbose_name': 'Histórico de Série',
                'verbose_name_plural': 'Históricos de Série',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='TransferOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pendente'), ('committed', 'Efetivada'), ('cancelled', 'Cancelada')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('cancel_reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Motivo do cancelamento')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Criado em')),
                ('processed_at', models.DateTimeField(blank=True, null=True, verbose_name='Processado em')),
                ('from_location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_out', to='stockledger.location', verbose_name='Origem')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Processado por')),
                ('requested_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Solicitado por')),
                ('to_location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_in', to='stockledger.location', verbose_name='Destino')),
            ],
            options={
                'verbose_name': 'Transferência',
                'verbose_name_plural': 'Transferências',
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('from_location', models.F('to_location')), _negated=True), name='transfer_distinct_locations'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TransferLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=64, verbose_name='SKU')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantidade')),
                ('lot_numbers', models.JSONField(blank=True, default=list, verbose_name='Lotes')),
                ('serial_numbers', models.JSONField(blank=True, default=list, verbose_name='Números de série')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockledger.transferorder', verbose_name='Transferência')),
            ],
            options={
                'verbose_name': 'Item da transferência',
                'verbose_name_plural': 'Itens da transferência',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockCount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(blank=True, default='', max_length=100, verbose_name='Referência')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('counted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Contado por')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='counts', to='stockledger.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Contagem',
                'verbose_name_plural': 'Contagens',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='StockCountLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=64, verbose_name='SKU')),
                ('system_quantity', models.IntegerField(verbose_name='Quantidade no sistema')),
                ('counted_quantity', models.PositiveIntegerField(verbose_name='Quantidade contada')),
                ('difference', models.IntegerField(verbose_name='Diferença')),
                ('notes', models.CharField(blank=True, default='', max_length=255, verbose_name='Observações')),
                ('count', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockledger.stockcount')),
                ('movement', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='count_line', to='stockledger.movement')),
            ],
            options={
                'verbose_name': 'Item da contagem',
                'verbose_name_plural': 'Itens da contagem',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='ReorderPolicy',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(db_index=True, max_length=64, verbose_name='SKU')),
                ('lead_time_days', models.PositiveIntegerField(blank=True, null=True, verbose_name='Prazo de reposição (dias)')),
                ('safety_days', models.PositiveIntegerField(blank=True, null=True, verbose_name='Estoque de segurança (dias)')),
                ('ordering_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Custo por pedido')),
                ('holding_cost_rate', models.DecimalField(blank=True, decimal_places=4, help_text='Fração do custo unitário por ano (ex: 0.2)', max_digits=6, null=True, verbose_name='Taxa de custo de manutenção')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=4, help_text='Vazio = custo médio ponderado dos recebimentos', max_digits=14, null=True, verbose_name='Custo unitário')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('last_triggered_at', models.DateTimeField(blank=True, null=True, verbose_name='Último disparo')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('location', models.ForeignKey(blank=True, help_text='Vazio = vale para todos os locais', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reorder_policies', to='stockledger.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Política de Reposição',
                'verbose_name_plural': 'Políticas de Reposição',
                'indexes': [models.Index(fields=['is_active'], name='reorder_policy_active_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('sku', 'location'), name='unique_reorder_policy_per_sku_location'),
                ],
            },
        ),
    ]
