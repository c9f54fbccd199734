"""Initial storefront schema: users, catalog, orders, articles, shipping, carrier integration

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-03-10
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers
revision: str = 'a1c4e7f20b31'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(table_name):
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    # ── users / sessions ──
    if not _has_table('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(50), nullable=False),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=False),
            sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('is_active', sa.Boolean(), server_default='1'),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
            sa.Column('last_login', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_users_username', 'users', ['username'], unique=True)
        op.create_index('ix_users_email', 'users', ['email'], unique=True)
        op.create_index('ix_users_created_at', 'users', ['created_at'])

    if not _has_table('user_sessions'):
        op.create_table(
            'user_sessions',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('token', sa.String(64), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        )
        op.create_index('ix_user_sessions_token', 'user_sessions', ['token'], unique=True)

    # ── catalog ──
    if not _has_table('products'):
        op.create_table(
            'products',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(200), nullable=False),
            sa.Column('slug', sa.String(220), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('image', sa.String(), nullable=False),
            sa.Column('categories', sa.JSON()),
            sa.Column('size', sa.String(), nullable=True),
            sa.Column('color', sa.String(), nullable=True),
            sa.Column('sku', sa.String(), nullable=True),
            sa.Column('price', sa.Float(), nullable=False),
            sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('active', sa.Boolean(), server_default='1'),
            # Shipping dimensions (kg / cm)
            sa.Column('weight', sa.Float(), nullable=True),
            sa.Column('length', sa.Float(), nullable=True),
            sa.Column('breadth', sa.Float(), nullable=True),
            sa.Column('height', sa.Float(), nullable=True),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_products_title', 'products', ['title'], unique=True)
        op.create_index('ix_products_slug', 'products', ['slug'])
        op.create_index('ix_products_sku', 'products', ['sku'], unique=True)
        op.create_index('ix_products_price', 'products', ['price'])
        op.create_index('ix_products_created_at', 'products', ['created_at'])

    # ── orders ──
    if not _has_table('orders'):
        op.create_table(
            'orders',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('customer_name', sa.String(100), nullable=False),
            sa.Column('customer_email', sa.String(), nullable=False),
            sa.Column('customer_phone', sa.String(10), nullable=False),
            sa.Column('street', sa.String(200), nullable=False),
            sa.Column('city', sa.String(50), nullable=False),
            sa.Column('state', sa.String(50), nullable=False),
            sa.Column('pincode', sa.String(6), nullable=False),
            sa.Column('country', sa.String(50), nullable=False, server_default='India'),
            sa.Column('subtotal', sa.Float(), nullable=False, server_default='0'),
            sa.Column('shipping_charges', sa.Float(), nullable=False, server_default='0'),
            sa.Column('amount', sa.Float(), nullable=False),
            sa.Column('payment_method', sa.String(10), nullable=False, server_default='online'),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
            # Razorpay
            sa.Column('razorpay_order_id', sa.String(), nullable=True),
            sa.Column('razorpay_payment_id', sa.String(), nullable=True),
            sa.Column('razorpay_signature', sa.String(), nullable=True),
            sa.Column('payment_date', sa.DateTime(), nullable=True),
            # Shipment
            sa.Column('carrier_order_id', sa.String(), nullable=True),
            sa.Column('shipment_id', sa.String(), nullable=True),
            sa.Column('awb_code', sa.String(), nullable=True),
            sa.Column('courier_id', sa.String(), nullable=True),
            sa.Column('courier_name', sa.String(), nullable=True),
            sa.Column('shipment_status', sa.String(), nullable=True),
            sa.Column('shipment_cost', sa.Float(), nullable=True),
            sa.Column('last_location', sa.String(), nullable=True),
            sa.Column('tracking_url', sa.String(), nullable=True),
            sa.Column('estimated_delivery', sa.DateTime(), nullable=True),
            sa.Column('last_tracked_at', sa.DateTime(), nullable=True),
            sa.Column('pickup_location', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_orders_customer_email', 'orders', ['customer_email'])
        op.create_index('ix_orders_customer_phone', 'orders', ['customer_phone'])
        op.create_index('ix_orders_state', 'orders', ['state'])
        op.create_index('ix_orders_status', 'orders', ['status'])
        op.create_index('ix_orders_razorpay_order_id', 'orders', ['razorpay_order_id'])
        op.create_index('ix_orders_razorpay_payment_id', 'orders', ['razorpay_payment_id'])
        op.create_index('ix_orders_shipment_id', 'orders', ['shipment_id'])
        op.create_index('ix_orders_awb_code', 'orders', ['awb_code'], unique=True)
        op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    if not _has_table('order_items'):
        op.create_table(
            'order_items',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
            sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
            sa.Column('title', sa.String(200), nullable=False),
            sa.Column('unit_price', sa.Float(), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        )
        op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
        op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    # ── articles ──
    if not _has_table('articles'):
        op.create_table(
            'articles',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('title', sa.String(200), nullable=False, unique=True),
            sa.Column('slug', sa.String(220), nullable=False),
            sa.Column('content', sa.Text(), nullable=False),
            sa.Column('excerpt', sa.String(300), nullable=True),
            sa.Column('featured_image', sa.String(), nullable=False),
            sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
            sa.Column('tags', sa.JSON()),
            sa.Column('categories', sa.JSON()),
            sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('likes', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('reading_time', sa.Integer(), server_default='1'),
            sa.Column('seo_title', sa.String(60), nullable=True),
            sa.Column('seo_description', sa.String(160), nullable=True),
            sa.Column('published_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_articles_slug', 'articles', ['slug'], unique=True)
        op.create_index('ix_articles_author_id', 'articles', ['author_id'])
        op.create_index('ix_articles_status', 'articles', ['status'])
        op.create_index('ix_articles_published_at', 'articles', ['published_at'])
        op.create_index('ix_articles_created_at', 'articles', ['created_at'])

    # ── shipping ──
    if not _has_table('shipping_rates'):
        op.create_table(
            'shipping_rates',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=False),
            sa.Column('base_rate', sa.Float(), nullable=False),
            sa.Column('per_km_rate', sa.Float(), nullable=False),
            sa.Column('free_shipping_threshold', sa.Float(), nullable=False),
            sa.Column('estimated_days', sa.String(), nullable=False),
            sa.Column('active', sa.Boolean(), server_default='1'),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_shipping_rates_active', 'shipping_rates', ['active'])

    if not _has_table('shipping_zones'):
        op.create_table(
            'shipping_zones',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(), nullable=False, unique=True),
            sa.Column('states', sa.JSON(), nullable=False),
            sa.Column('rate', sa.Float(), nullable=False),
            sa.Column('estimated_days', sa.String(), nullable=False),
            sa.Column('active', sa.Boolean(), server_default='1'),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_shipping_zones_active', 'shipping_zones', ['active'])

    if not _has_table('shiprocket_integrations'):
        op.create_table(
            'shiprocket_integrations',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('token', sa.Text(), nullable=True),
            sa.Column('token_expiry', sa.DateTime(), nullable=True),
            sa.Column('last_authenticated', sa.DateTime(), nullable=True),
            sa.Column('is_active', sa.Boolean(), server_default='1'),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )


def downgrade() -> None:
    for table in (
        'shiprocket_integrations', 'shipping_zones', 'shipping_rates', 'articles',
        'order_items', 'orders', 'products', 'user_sessions', 'users',
    ):
        if _has_table(table):
            op.drop_table(table)
