"""create_topup_core_tables

Revision ID: create_topup_core_20260105
Revises:
Create Date: 2026-01-05 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'create_topup_core_20260105'
down_revision = None
branch_labels = None
depends_on = None


PROVIDER_STATUS = ('ACTIVE', 'INACTIVE', 'ERROR')
TOPUP_PROVIDERS = ('DINGCONNECT', 'RELOADLY')
GATEWAYS = ('PGPAY', 'STRIPE', 'PAYPAL', 'WALLET')
ADJUSTMENTS = ('PERCENTAGE', 'FIXED')

ENUM_TYPES = (
    'organization_status',
    'payment_gateway_type',
    'payment_provider_status',
    'provider_environment',
    'topup_provider_type',
    'integration_status',
    'product_topup_provider',
    'wallet_status',
    'wallet_transaction_type',
    'wallet_transaction_status',
    'member_role',
    'balance_history_type',
    'pricing_rule_type',
    'discount_type',
    'transaction_status',
    'transaction_payment_gateway',
    'transaction_topup_provider',
    'webhook_log_status',
)


def _base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # Tenant root
    op.create_table(
        'organizations',
        *_base_columns(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'SUSPENDED', name='organization_status'), nullable=False, server_default='ACTIVE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_organizations_id'), 'organizations', ['id'], unique=False)
    op.create_index(op.f('ix_organizations_slug'), 'organizations', ['slug'], unique=True)

    op.create_table(
        'storefront_settings',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('countries', sa.JSON(), nullable=True),
        sa.Column('payment_methods', sa.JSON(), nullable=True),
        sa.Column('validate_only', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('total_orders', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_revenue', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('last_order_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_storefront_settings_organization_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_storefront_settings_id'), 'storefront_settings', ['id'], unique=False)
    op.create_index(op.f('ix_storefront_settings_organization_id'), 'storefront_settings', ['organization_id'], unique=True)

    op.create_table(
        'payment_providers',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('provider', sa.Enum(*GATEWAYS, name='payment_gateway_type'), nullable=False),
        sa.Column('status', sa.Enum(*PROVIDER_STATUS, name='payment_provider_status'), nullable=False, server_default='INACTIVE'),
        sa.Column('environment', sa.Enum('SANDBOX', 'PRODUCTION', name='provider_environment'), nullable=False, server_default='SANDBOX'),
        sa.Column('credentials', sa.JSON(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_payment_providers_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'provider', name='uq_payment_providers_org_provider'),
    )
    op.create_index(op.f('ix_payment_providers_id'), 'payment_providers', ['id'], unique=False)
    op.create_index(op.f('ix_payment_providers_organization_id'), 'payment_providers', ['organization_id'], unique=False)

    op.create_table(
        'integrations',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('provider', sa.Enum(*TOPUP_PROVIDERS, name='topup_provider_type'), nullable=False),
        sa.Column('status', sa.Enum(*PROVIDER_STATUS, name='integration_status'), nullable=False, server_default='INACTIVE'),
        sa.Column('credentials', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_integrations_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'provider', name='uq_integrations_org_provider'),
    )
    op.create_index(op.f('ix_integrations_id'), 'integrations', ['id'], unique=False)
    op.create_index(op.f('ix_integrations_organization_id'), 'integrations', ['organization_id'], unique=False)

    op.create_table(
        'customers',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('total_purchases', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('last_purchase_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_customers_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'email', name='uq_customers_org_email'),
    )
    op.create_index(op.f('ix_customers_id'), 'customers', ['id'], unique=False)
    op.create_index(op.f('ix_customers_organization_id'), 'customers', ['organization_id'], unique=False)
    op.create_index(op.f('ix_customers_email'), 'customers', ['email'], unique=False)

    # Catalog
    op.create_table(
        'products',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('provider', sa.Enum(*TOPUP_PROVIDERS, name='product_topup_provider'), nullable=False, server_default='DINGCONNECT'),
        sa.Column('sku_code', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('country_code', sa.String(length=2), nullable=True),
        sa.Column('operator_id', sa.String(length=100), nullable=True),
        sa.Column('operator_name', sa.String(length=255), nullable=True),
        sa.Column('cost_price', sa.Numeric(20, 2), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('is_variable_value', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('min_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('max_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('benefit_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('benefit_unit', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_products_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'sku_code', name='uq_products_org_sku'),
    )
    op.create_index(op.f('ix_products_id'), 'products', ['id'], unique=False)
    op.create_index(op.f('ix_products_organization_id'), 'products', ['organization_id'], unique=False)
    op.create_index(op.f('ix_products_sku_code'), 'products', ['sku_code'], unique=False)
    op.create_index(op.f('ix_products_country_code'), 'products', ['country_code'], unique=False)
    op.create_index(op.f('ix_products_is_active'), 'products', ['is_active'], unique=False)

    # Members and spending limits
    op.create_table(
        'memberships',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.Enum('OWNER', 'ADMIN', 'STAFF', name='member_role'), nullable=False, server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('balance_limit_enabled', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('max_balance', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('current_used', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_memberships_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_memberships_org_user'),
        sa.CheckConstraint('current_used >= 0', name='check_memberships_current_used_non_negative'),
        sa.CheckConstraint('NOT balance_limit_enabled OR current_used <= max_balance', name='check_memberships_within_limit'),
    )
    op.create_index(op.f('ix_memberships_id'), 'memberships', ['id'], unique=False)
    op.create_index(op.f('ix_memberships_organization_id'), 'memberships', ['organization_id'], unique=False)
    op.create_index(op.f('ix_memberships_user_id'), 'memberships', ['user_id'], unique=False)

    op.create_table(
        'balance_history',
        *_base_columns(),
        sa.Column('membership_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.Enum('USAGE', 'RESET', 'LIMIT_UPDATE', name='balance_history_type'), nullable=False),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('previous_balance', sa.Numeric(20, 2), nullable=False),
        sa.Column('new_balance', sa.Numeric(20, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('history_metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'], name='fk_balance_history_membership_id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_balance_history_organization_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_balance_history_id'), 'balance_history', ['id'], unique=False)
    op.create_index(op.f('ix_balance_history_membership_id'), 'balance_history', ['membership_id'], unique=False)
    op.create_index(op.f('ix_balance_history_organization_id'), 'balance_history', ['organization_id'], unique=False)
    op.create_index(op.f('ix_balance_history_user_id'), 'balance_history', ['user_id'], unique=False)
    op.create_index(op.f('ix_balance_history_type'), 'balance_history', ['type'], unique=False)

    # Organization wallet ledger
    op.create_table(
        'wallets',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('balance', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('reserved_balance', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('available_balance', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.Enum('ACTIVE', 'SUSPENDED', 'FROZEN', name='wallet_status'), nullable=False, server_default='ACTIVE'),
        sa.Column('low_balance_threshold', sa.Numeric(20, 2), nullable=False, server_default='100'),
        sa.Column('total_deposits', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('total_withdrawals', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('last_deposit_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_transaction_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_wallets_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('reserved_balance >= 0', name='check_wallets_reserved_non_negative'),
        sa.CheckConstraint('reserved_balance <= balance', name='check_wallets_reserved_within_balance'),
        sa.CheckConstraint('available_balance >= 0', name='check_wallets_available_non_negative'),
    )
    op.create_index(op.f('ix_wallets_id'), 'wallets', ['id'], unique=False)
    op.create_index(op.f('ix_wallets_organization_id'), 'wallets', ['organization_id'], unique=True)

    op.create_table(
        'wallet_transactions',
        *_base_columns(),
        sa.Column('wallet_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.Enum('DEPOSIT', 'WITHDRAWAL', 'PURCHASE', 'REFUND', 'FEE', name='wallet_transaction_type'), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'COMPLETED', 'FAILED', name='wallet_transaction_status'), nullable=False, server_default='COMPLETED'),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('balance_before', sa.Numeric(20, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(20, 2), nullable=False),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('payment_method', sa.String(length=50), nullable=True),
        sa.Column('entry_metadata', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['wallet_id'], ['wallets.id'], name='fk_wallet_transactions_wallet_id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_wallet_transactions_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='check_wallet_transactions_amount_positive'),
    )
    op.create_index(op.f('ix_wallet_transactions_id'), 'wallet_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_wallet_id'), 'wallet_transactions', ['wallet_id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_organization_id'), 'wallet_transactions', ['organization_id'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_type'), 'wallet_transactions', ['type'], unique=False)
    op.create_index(op.f('ix_wallet_transactions_reference_id'), 'wallet_transactions', ['reference_id'], unique=False)

    # Pricing
    op.create_table(
        'pricing_rules',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('percentage_markup', sa.Numeric(10, 4), nullable=True),
        sa.Column('fixed_markup', sa.Numeric(20, 2), nullable=True),
        sa.Column('type', sa.Enum(*ADJUSTMENTS, name='pricing_rule_type'), nullable=True),
        sa.Column('value', sa.Numeric(20, 4), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('applicable_countries', sa.JSON(), nullable=True),
        sa.Column('applicable_regions', sa.JSON(), nullable=True),
        sa.Column('excluded_countries', sa.JSON(), nullable=True),
        sa.Column('min_transaction_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('max_transaction_amount', sa.Numeric(20, 2), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_pricing_rules_organization_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_pricing_rules_id'), 'pricing_rules', ['id'], unique=False)
    op.create_index(op.f('ix_pricing_rules_organization_id'), 'pricing_rules', ['organization_id'], unique=False)
    op.create_index(op.f('ix_pricing_rules_priority'), 'pricing_rules', ['priority'], unique=False)
    op.create_index(op.f('ix_pricing_rules_is_active'), 'pricing_rules', ['is_active'], unique=False)

    op.create_table(
        'discounts',
        *_base_columns(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('code', sa.String(length=50), nullable=True),
        sa.Column('type', sa.Enum(*ADJUSTMENTS, name='discount_type'), nullable=False),
        sa.Column('value', sa.Numeric(20, 4), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('min_purchase_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('max_discount_amount', sa.Numeric(20, 2), nullable=True),
        sa.Column('applicable_countries', sa.JSON(), nullable=True),
        sa.Column('applicable_products', sa.JSON(), nullable=True),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_uses_per_customer', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_discounts_organization_id'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'code', name='uq_discounts_org_code'),
    )
    op.create_index(op.f('ix_discounts_id'), 'discounts', ['id'], unique=False)
    op.create_index(op.f('ix_discounts_organization_id'), 'discounts', ['organization_id'], unique=False)
    op.create_index(op.f('ix_discounts_code'), 'discounts', ['code'], unique=False)

    # Purchases
    op.create_table(
        'transactions',
        *_base_columns(),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('membership_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('product_sku_code', sa.String(length=100), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        sa.Column('country_code', sa.String(length=2), nullable=True),
        sa.Column('operator_id', sa.String(length=100), nullable=True),
        sa.Column('operator_name', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Numeric(20, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('discount_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('discount_amount', sa.Numeric(20, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.Enum('PENDING', 'PAID', 'PROCESSING', 'COMPLETED', 'FAILED', name='transaction_status'), nullable=False, server_default='PENDING'),
        sa.Column('payment_gateway', sa.Enum(*GATEWAYS, name='transaction_payment_gateway'), nullable=False),
        sa.Column('payment_token', sa.String(length=255), nullable=True),
        sa.Column('payment_id', sa.String(length=255), nullable=True),
        sa.Column('provider', sa.Enum(*TOPUP_PROVIDERS, name='transaction_topup_provider'), nullable=False, server_default='DINGCONNECT'),
        sa.Column('provider_transaction_id', sa.String(length=255), nullable=True),
        sa.Column('recipient_phone', sa.String(length=50), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=True),
        sa.Column('recipient_name', sa.String(length=255), nullable=True),
        sa.Column('transaction_metadata', sa.JSON(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_transactions_organization_id'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_transactions_customer_id'),
        sa.ForeignKeyConstraint(['membership_id'], ['memberships.id'], name='fk_transactions_membership_id'),
        sa.ForeignKeyConstraint(['discount_id'], ['discounts.id'], name='fk_transactions_discount_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_transactions_id'), 'transactions', ['id'], unique=False)
    op.create_index(op.f('ix_transactions_order_id'), 'transactions', ['order_id'], unique=True)
    op.create_index(op.f('ix_transactions_organization_id'), 'transactions', ['organization_id'], unique=False)
    op.create_index(op.f('ix_transactions_customer_id'), 'transactions', ['customer_id'], unique=False)
    op.create_index(op.f('ix_transactions_membership_id'), 'transactions', ['membership_id'], unique=False)
    op.create_index(op.f('ix_transactions_discount_id'), 'transactions', ['discount_id'], unique=False)
    op.create_index(op.f('ix_transactions_status'), 'transactions', ['status'], unique=False)
    op.create_index(op.f('ix_transactions_payment_token'), 'transactions', ['payment_token'], unique=True)
    op.create_index(op.f('ix_transactions_provider_transaction_id'), 'transactions', ['provider_transaction_id'], unique=False)
    op.create_index(op.f('ix_transactions_recipient_email'), 'transactions', ['recipient_email'], unique=False)

    op.create_table(
        'webhook_logs',
        *_base_columns(),
        sa.Column('source', sa.String(length=50), nullable=False),
        sa.Column('event', sa.String(length=100), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', sa.Enum('SUCCESS', 'FAILED', name='webhook_log_status'), nullable=False),
        sa.Column('response_code', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('processing_duration_ms', sa.Integer(), nullable=True),
        sa.Column('transaction_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], name='fk_webhook_logs_transaction_id'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_webhook_logs_id'), 'webhook_logs', ['id'], unique=False)
    op.create_index(op.f('ix_webhook_logs_source'), 'webhook_logs', ['source'], unique=False)
    op.create_index(op.f('ix_webhook_logs_transaction_id'), 'webhook_logs', ['transaction_id'], unique=False)


def downgrade() -> None:
    # Reverse foreign key order; indexes go with their tables
    for table in (
        'webhook_logs',
        'transactions',
        'discounts',
        'pricing_rules',
        'wallet_transactions',
        'wallets',
        'balance_history',
        'memberships',
        'products',
        'customers',
        'integrations',
        'payment_providers',
        'storefront_settings',
        'organizations',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUM_TYPES:
        sa.Enum(name=name).drop(bind, checkfirst=True)
