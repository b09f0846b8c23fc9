"""Initial schema

Revision ID: 001
Revises:
Create Date: 2025-01-10 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant() -> list:
    return [
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
    ]


def upgrade() -> None:
    # Tenants
    op.create_table(
        'tenants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('nip', sa.String(20), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(2), nullable=False, server_default='PL'),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('bank_account', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    # Fleet
    op.create_table(
        'trailers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('registration_number', sa.String(20), nullable=False),
        sa.Column('type', sa.Enum('CURTAIN', 'BOX', 'REFRIGERATOR', 'TANKER', 'FLATBED', 'MEGA', 'TIPPER', 'OTHER', name='trailertype'), nullable=False, server_default='CURTAIN'),
        sa.Column('brand', sa.String(100), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('load_capacity', sa.Float(), nullable=True),
        sa.Column('volume', sa.Float(), nullable=True),
        sa.Column('axles', sa.Integer(), nullable=True),
        sa.Column('adr_classes', sa.String(50), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'IN_SERVICE', 'SOLD', name='vehiclestatus'), nullable=False, server_default='ACTIVE'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'registration_number', name='uq_trailers_tenant_registration'),
    )
    op.create_index('ix_trailers_tenant_id', 'trailers', ['tenant_id'])

    op.create_table(
        'vehicles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('registration_number', sa.String(20), nullable=False),
        sa.Column('type', sa.Enum('TRUCK', 'BUS', 'SOLO', 'TRAILER', 'CAR', name='vehicletype'), nullable=False, server_default='TRUCK'),
        sa.Column('brand', sa.String(100), nullable=True),
        sa.Column('model', sa.String(100), nullable=True),
        sa.Column('vin', sa.String(17), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('status', postgresql.ENUM('ACTIVE', 'INACTIVE', 'IN_SERVICE', 'SOLD', name='vehiclestatus', create_type=False), nullable=False, server_default='ACTIVE'),
        sa.Column('load_capacity', sa.Float(), nullable=True),
        sa.Column('volume', sa.Float(), nullable=True),
        sa.Column('euro_class', sa.String(10), nullable=True),
        sa.Column('fuel_type', sa.Enum('DIESEL', 'PETROL', 'LPG', 'ELECTRIC', 'HYBRID', name='fueltype'), nullable=False, server_default='DIESEL'),
        sa.Column('current_driver_id', sa.Uuid(), nullable=True),
        sa.Column('current_trailer_id', sa.Uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'registration_number', name='uq_vehicles_tenant_registration'),
        sa.ForeignKeyConstraint(['current_trailer_id'], ['trailers.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_vehicles_tenant_id', 'vehicles', ['tenant_id'])

    op.create_table(
        'drivers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('pesel', sa.String(11), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('employment_type', sa.Enum('EMPLOYMENT', 'B2B', 'CONTRACT', name='employmenttype'), nullable=False, server_default='EMPLOYMENT'),
        sa.Column('employment_date', sa.Date(), nullable=True),
        sa.Column('termination_date', sa.Date(), nullable=True),
        sa.Column('current_vehicle_id', sa.Uuid(), nullable=True),
        sa.Column('license_number', sa.String(50), nullable=True),
        sa.Column('license_expiry', sa.Date(), nullable=True),
        sa.Column('license_categories', sa.String(50), nullable=True),
        sa.Column('adr_number', sa.String(50), nullable=True),
        sa.Column('adr_expiry', sa.Date(), nullable=True),
        sa.Column('adr_classes', sa.String(50), nullable=True),
        sa.Column('medical_expiry', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'ON_LEAVE', 'SICK', 'INACTIVE', 'TERMINATED', name='driverstatus'), nullable=False, server_default='ACTIVE'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'pesel', name='uq_drivers_tenant_pesel'),
        sa.ForeignKeyConstraint(['current_vehicle_id'], ['vehicles.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_drivers_tenant_id', 'drivers', ['tenant_id'])

    # vehicles <-> drivers reference each other
    op.create_foreign_key(
        'fk_vehicles_current_driver', 'vehicles', 'drivers',
        ['current_driver_id'], ['id'], ondelete='SET NULL',
    )

    # Users
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', sa.Enum('SUPER_ADMIN', 'ADMIN', 'MANAGER', 'DISPATCHER', 'ACCOUNTANT', 'VIEWER', 'DRIVER', name='userrole'), nullable=False, server_default='VIEWER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('tenant_id', sa.Uuid(), nullable=True),
        sa.Column('driver_id', sa.Uuid(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'push_tokens',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('token', sa.String(255), nullable=False),
        sa.Column('platform', sa.String(20), nullable=False, server_default='expo'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )

    # Contractors
    op.create_table(
        'contractors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('short_name', sa.String(100), nullable=True),
        sa.Column('type', sa.Enum('CLIENT', 'CARRIER', 'BOTH', name='contractortype'), nullable=False, server_default='CLIENT'),
        sa.Column('nip', sa.String(20), nullable=True),
        sa.Column('regon', sa.String(20), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('postal_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(2), nullable=False, server_default='PL'),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('contact_person', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('payment_days', sa.Integer(), nullable=False, server_default='14'),
        sa.Column('credit_limit', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contractors_tenant_id', 'contractors', ['tenant_id'])
    op.create_index('ix_contractors_nip', 'contractors', ['nip'])

    # Invoices
    op.create_table(
        'invoices',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('type', sa.Enum('SINGLE', 'COLLECTIVE', 'PROFORMA', 'CORRECTION', name='invoicetype'), nullable=False, server_default='SINGLE'),
        sa.Column('status', sa.Enum('DRAFT', 'ISSUED', 'SENT', 'PAID', 'OVERDUE', 'CANCELLED', name='invoicestatus'), nullable=False, server_default='DRAFT'),
        sa.Column('contractor_id', sa.Uuid(), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('sale_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.Enum('TRANSFER', 'CASH', 'CARD', name='paymentmethod'), nullable=False, server_default='TRANSFER'),
        sa.Column('bank_account', sa.String(50), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='PLN'),
        sa.Column('exchange_rate', sa.Float(), nullable=True),
        sa.Column('exchange_rate_date', sa.Date(), nullable=True),
        sa.Column('net_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('vat_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('gross_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('paid_date', sa.Date(), nullable=True),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'invoice_number', name='uq_invoices_tenant_number'),
        sa.ForeignKeyConstraint(['contractor_id'], ['contractors.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_contractor_id', 'invoices', ['contractor_id'])
    op.create_index('ix_invoices_issue_date', 'invoices', ['issue_date'])

    op.create_table(
        'invoice_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False, server_default='1'),
        sa.Column('unit', sa.String(20), nullable=False, server_default='szt.'),
        sa.Column('unit_price_net', sa.Numeric(12, 2), nullable=False),
        sa.Column('vat_rate', sa.Float(), nullable=False, server_default='23'),
        sa.Column('net_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('vat_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('gross_amount', sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('external_number', sa.String(100), nullable=True),
        sa.Column('type', sa.Enum('OWN', 'FORWARDING', name='ordertype'), nullable=False, server_default='OWN'),
        sa.Column('status', sa.Enum('NEW', 'PLANNED', 'ASSIGNED', 'CONFIRMED', 'ACCEPTED', 'LOADING', 'IN_TRANSIT', 'UNLOADING', 'DELIVERED', 'COMPLETED', 'CANCELLED', 'PROBLEM', name='orderstatus'), nullable=False, server_default='NEW'),
        sa.Column('contractor_id', sa.Uuid(), nullable=True),
        sa.Column('subcontractor_id', sa.Uuid(), nullable=True),
        sa.Column('vehicle_id', sa.Uuid(), nullable=True),
        sa.Column('trailer_id', sa.Uuid(), nullable=True),
        sa.Column('driver_id', sa.Uuid(), nullable=True),
        sa.Column('origin', sa.String(255), nullable=False),
        sa.Column('origin_city', sa.String(100), nullable=True),
        sa.Column('origin_postal_code', sa.String(20), nullable=True),
        sa.Column('origin_country', sa.String(2), nullable=False, server_default='PL'),
        sa.Column('destination', sa.String(255), nullable=False),
        sa.Column('destination_city', sa.String(100), nullable=True),
        sa.Column('destination_postal_code', sa.String(20), nullable=True),
        sa.Column('destination_country', sa.String(2), nullable=False, server_default='PL'),
        sa.Column('distance_km', sa.Float(), nullable=True),
        sa.Column('loading_date', sa.Date(), nullable=False),
        sa.Column('loading_time_from', sa.String(5), nullable=True),
        sa.Column('loading_time_to', sa.String(5), nullable=True),
        sa.Column('loading_contact', sa.String(255), nullable=True),
        sa.Column('loading_phone', sa.String(50), nullable=True),
        sa.Column('unloading_date', sa.Date(), nullable=False),
        sa.Column('unloading_time_from', sa.String(5), nullable=True),
        sa.Column('unloading_time_to', sa.String(5), nullable=True),
        sa.Column('unloading_contact', sa.String(255), nullable=True),
        sa.Column('unloading_phone', sa.String(50), nullable=True),
        sa.Column('cargo_description', sa.Text(), nullable=True),
        sa.Column('cargo_weight', sa.Float(), nullable=True),
        sa.Column('cargo_volume', sa.Float(), nullable=True),
        sa.Column('cargo_pallets', sa.Integer(), nullable=True),
        sa.Column('cargo_value', sa.Numeric(12, 2), nullable=True),
        sa.Column('requires_adr', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('price_net', sa.Numeric(12, 2), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='PLN'),
        sa.Column('cost_net', sa.Numeric(12, 2), nullable=True),
        sa.Column('flat_rate_km', sa.Float(), nullable=True),
        sa.Column('flat_rate_overage', sa.Numeric(12, 2), nullable=True),
        sa.Column('km_limit', sa.Float(), nullable=True),
        sa.Column('km_overage_rate', sa.Numeric(12, 2), nullable=True),
        sa.Column('invoice_id', sa.Uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('pod_signature_url', sa.String(500), nullable=True),
        sa.Column('pod_recipient_name', sa.String(255), nullable=True),
        sa.Column('pod_signed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_latitude', sa.Float(), nullable=True),
        sa.Column('last_longitude', sa.Float(), nullable=True),
        sa.Column('last_location_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'order_number', name='uq_orders_tenant_number'),
        sa.ForeignKeyConstraint(['contractor_id'], ['contractors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['subcontractor_id'], ['contractors.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['trailer_id'], ['trailers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_orders_tenant_id', 'orders', ['tenant_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_contractor_id', 'orders', ['contractor_id'])
    op.create_index('ix_orders_vehicle_id', 'orders', ['vehicle_id'])
    op.create_index('ix_orders_trailer_id', 'orders', ['trailer_id'])
    op.create_index('ix_orders_driver_id', 'orders', ['driver_id'])
    op.create_index('ix_orders_loading_date', 'orders', ['loading_date'])
    op.create_index('ix_orders_invoice_id', 'orders', ['invoice_id'])

    op.create_table(
        'order_waypoints',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('type', sa.Enum('LOADING', 'UNLOADING', 'STOP', name='waypointtype'), nullable=False, server_default='STOP'),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(2), nullable=False, server_default='PL'),
        sa.Column('scheduled_date', sa.Date(), nullable=True),
        sa.Column('scheduled_time', sa.String(5), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_order_waypoints_order_id', 'order_waypoints', ['order_id'])

    op.create_table(
        'order_assignments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('driver_id', sa.Uuid(), nullable=False),
        sa.Column('vehicle_id', sa.Uuid(), nullable=True),
        sa.Column('trailer_id', sa.Uuid(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('revenue_share', sa.Float(), nullable=False, server_default='1'),
        sa.Column('allocated_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('distance_km', sa.Float(), nullable=True),
        sa.Column('reason', sa.Enum('INITIAL', 'DRIVER_ILLNESS', 'DRIVER_VACATION', 'VEHICLE_BREAKDOWN', 'VEHICLE_SERVICE', 'SCHEDULE_CONFLICT', 'CLIENT_REQUEST', 'OPTIMIZATION', 'OTHER', name='assignmentreason'), nullable=False, server_default='INITIAL'),
        sa.Column('reason_note', sa.Text(), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['trailer_id'], ['trailers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_order_assignments_tenant_id', 'order_assignments', ['tenant_id'])
    op.create_index('ix_order_assignments_order_id', 'order_assignments', ['order_id'])
    op.create_index('ix_order_assignments_driver_id', 'order_assignments', ['driver_id'])

    op.create_table(
        'order_photos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(500), nullable=False),
        sa.Column('type', sa.String(30), nullable=False, server_default='DOCUMENTATION'),
        sa.Column('uploaded_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_order_photos_order_id', 'order_photos', ['order_id'])

    op.create_table(
        'order_locations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('speed', sa.Float(), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_order_locations_order_id', 'order_locations', ['order_id'])

    # Costs and documents
    op.create_table(
        'costs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('category', sa.Enum('FUEL', 'SERVICE', 'TOLL', 'INSURANCE', 'PARKING', 'FINE', 'SALARY', 'TAX', 'OFFICE', 'OTHER', name='costcategory'), nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='PLN'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('vehicle_id', sa.Uuid(), nullable=True),
        sa.Column('driver_id', sa.Uuid(), nullable=True),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('attachment_url', sa.String(500), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_costs_tenant_id', 'costs', ['tenant_id'])
    op.create_index('ix_costs_category', 'costs', ['category'])
    op.create_index('ix_costs_date', 'costs', ['date'])
    op.create_index('ix_costs_vehicle_id', 'costs', ['vehicle_id'])
    op.create_index('ix_costs_driver_id', 'costs', ['driver_id'])
    op.create_index('ix_costs_order_id', 'costs', ['order_id'])

    op.create_table(
        'documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.Enum(
            'VEHICLE_REGISTRATION', 'VEHICLE_INSURANCE_OC', 'VEHICLE_INSURANCE_AC', 'VEHICLE_INSPECTION',
            'TACHOGRAPH_CALIBRATION', 'DRIVER_LICENSE', 'DRIVER_ADR', 'DRIVER_MEDICAL', 'DRIVER_PSYCHO',
            'DRIVER_QUALIFICATION', 'COMPANY_LICENSE', 'COMPANY_INSURANCE', 'COMPANY_CERTIFICATE',
            'CMR', 'DELIVERY_NOTE', 'OTHER',
            name='documenttype',
        ), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_url', sa.String(500), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('mime_type', sa.String(100), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('vehicle_id', sa.Uuid(), nullable=True),
        sa.Column('trailer_id', sa.Uuid(), nullable=True),
        sa.Column('driver_id', sa.Uuid(), nullable=True),
        sa.Column('order_id', sa.Uuid(), nullable=True),
        sa.Column('uploaded_by_id', sa.Uuid(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['trailer_id'], ['trailers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['driver_id'], ['drivers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_documents_tenant_id', 'documents', ['tenant_id'])
    op.create_index('ix_documents_type', 'documents', ['type'])
    op.create_index('ix_documents_expiry_date', 'documents', ['expiry_date'])
    op.create_index('ix_documents_vehicle_id', 'documents', ['vehicle_id'])
    op.create_index('ix_documents_trailer_id', 'documents', ['trailer_id'])
    op.create_index('ix_documents_driver_id', 'documents', ['driver_id'])
    op.create_index('ix_documents_order_id', 'documents', ['order_id'])

    # Notes board
    op.create_table(
        'notes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('author_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.Enum('GENERAL', 'ANNOUNCEMENT', 'PRIVATE', 'ENTITY_LINKED', name='notetype'), nullable=False, server_default='GENERAL'),
        sa.Column('priority', sa.Enum('LOW', 'NORMAL', 'HIGH', 'URGENT', name='notepriority'), nullable=False, server_default='NORMAL'),
        sa.Column('category', sa.Enum('GENERAL', 'FLEET', 'CLIENTS', 'FINANCE', 'OPERATIONS', 'OTHER', name='notecategory'), nullable=False, server_default='GENERAL'),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_notes_tenant_id', 'notes', ['tenant_id'])
    op.create_index('ix_notes_author_id', 'notes', ['author_id'])
    op.create_index('ix_notes_entity_id', 'notes', ['entity_id'])

    for table, extra in (
        ('note_recipients', []),
        ('note_reads', [sa.Column('read_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('note_id', sa.Uuid(), nullable=False),
            sa.Column('user_id', sa.Uuid(), nullable=False),
            *extra,
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('note_id', 'user_id', name=f'uq_{table}'),
            sa.ForeignKeyConstraint(['note_id'], ['notes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        )
        op.create_index(f'ix_{table}_note_id', table, ['note_id'])
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])

    op.create_table(
        'note_reactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('note_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('emoji', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('note_id', 'user_id', 'emoji', name='uq_note_reactions'),
        sa.ForeignKeyConstraint(['note_id'], ['notes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_note_reactions_note_id', 'note_reactions', ['note_id'])

    op.create_table(
        'note_comments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('note_id', sa.Uuid(), nullable=False),
        sa.Column('author_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['note_id'], ['notes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_note_comments_note_id', 'note_comments', ['note_id'])

    # Audit trail
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.Enum('CREATE', 'UPDATE', 'DELETE', 'LOGIN', 'LOGOUT', 'EXPORT', 'IMPORT', 'VIEW', 'STATUS_CHANGE', name='auditaction'), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_tenant(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_audit_logs_tenant_id', 'audit_logs', ['tenant_id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    # Webhooks
    op.create_table(
        'webhook_subscriptions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('url', sa.String(500), nullable=False),
        sa.Column('secret', sa.String(100), nullable=False),
        sa.Column('events', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('owner_id', sa.Uuid(), nullable=True),
        *_tenant(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_webhook_subscriptions_tenant_id', 'webhook_subscriptions', ['tenant_id'])

    op.create_table(
        'webhook_deliveries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('webhook_id', sa.Uuid(), nullable=False),
        sa.Column('event', sa.String(50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status_code', sa.Integer(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['webhook_id'], ['webhook_subscriptions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_webhook_deliveries_webhook_id', 'webhook_deliveries', ['webhook_id'])


def downgrade() -> None:
    for table in (
        'webhook_deliveries',
        'webhook_subscriptions',
        'audit_logs',
        'note_comments',
        'note_reactions',
        'note_reads',
        'note_recipients',
        'notes',
        'documents',
        'costs',
        'order_locations',
        'order_photos',
        'order_assignments',
        'order_waypoints',
        'orders',
        'invoice_items',
        'invoices',
        'contractors',
        'push_tokens',
        'users',
    ):
        op.drop_table(table)

    op.drop_constraint('fk_vehicles_current_driver', 'vehicles', type_='foreignkey')
    op.drop_table('drivers')
    op.drop_table('vehicles')
    op.drop_table('trailers')
    op.drop_table('tenants')

    for enum_name in (
        'auditaction', 'notecategory', 'notepriority', 'notetype', 'documenttype', 'costcategory',
        'assignmentreason', 'waypointtype', 'orderstatus', 'ordertype', 'paymentmethod',
        'invoicestatus', 'invoicetype', 'contractortype', 'userrole', 'driverstatus',
        'employmenttype', 'fueltype', 'vehicletype', 'vehiclestatus', 'trailertype',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
