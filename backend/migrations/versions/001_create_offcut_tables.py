"""Create offcut tables

Offcut inventory, reservations and the usage audit trail, plus the
collaborator tables the fit suggestions read (materials, templates,
order items, production batches).

Revision ID: 001_offcut_tables
Revises:
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_offcut_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='WORKER'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'materials',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(30), nullable=False, server_default='OTHER'),
        sa.Column('thickness_mm', sa.Integer(), nullable=False),
        sa.Column('sheet_width_mm', sa.Integer(), nullable=True),
        sa.Column('sheet_height_mm', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_materials_category', 'materials', ['category'])

    op.create_table(
        'product_templates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('default_material_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['default_material_id'], ['materials.id'],
                                name='fk_product_templates_default_material'),
    )

    op.create_table(
        'template_material_hints',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('template_id', sa.Integer(), nullable=False, index=True),
        sa.Column('avg_area_mm2_per_item', sa.Float(), nullable=True),
        sa.Column('avg_sheet_fraction_per_item', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['product_templates.id'],
                                name='fk_template_material_hints_template', ondelete='CASCADE'),
    )

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=True),
        sa.Column('template_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('width_mm', sa.Integer(), nullable=True),
        sa.Column('height_mm', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], name='fk_order_items_material'),
        sa.ForeignKeyConstraint(['template_id'], ['product_templates.id'], name='fk_order_items_template'),
    )

    op.create_table(
        'production_batches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='PLANNED'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'batch_item_links',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('order_item_id', sa.Integer(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['batch_id'], ['production_batches.id'],
                                name='fk_batch_item_links_batch', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_item_id'], ['order_items.id'],
                                name='fk_batch_item_links_order_item'),
        sa.UniqueConstraint('batch_id', 'order_item_id', name='uq_batch_item_links_batch_item'),
    )

    # ------------------------------------------------------------------
    # Offcuts
    # ------------------------------------------------------------------
    op.create_table(
        'offcuts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('thickness_mm', sa.Integer(), nullable=False),

        # Shape
        sa.Column('shape_type', sa.String(20), nullable=False, server_default='RECTANGLE'),
        sa.Column('width_mm', sa.Integer(), nullable=True),
        sa.Column('height_mm', sa.Integer(), nullable=True),
        sa.Column('bounding_box_width_mm', sa.Integer(), nullable=True),
        sa.Column('bounding_box_height_mm', sa.Integer(), nullable=True),
        sa.Column('estimated_area_mm2', sa.Integer(), nullable=True),

        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('location_label', sa.String(100), nullable=True),
        sa.Column('condition', sa.String(20), nullable=False, server_default='GOOD'),
        sa.Column('status', sa.String(20), nullable=False, server_default='AVAILABLE'),
        sa.Column('source', sa.String(30), nullable=False, server_default='MANUAL'),
        sa.Column('notes', sa.Text(), nullable=True),

        # Audit
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),

        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], name='fk_offcuts_material'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], name='fk_offcuts_created_by'),
    )
    op.create_index('ix_offcuts_status', 'offcuts', ['status'])
    op.create_index('ix_offcuts_location_label', 'offcuts', ['location_label'])
    op.create_index(
        'ix_offcuts_material_thickness_status', 'offcuts',
        ['material_id', 'thickness_mm', 'status'],
    )

    op.create_table(
        'offcut_reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('offcut_id', sa.Integer(), nullable=False, index=True),
        sa.Column('order_item_id', sa.Integer(), nullable=True, index=True),
        sa.Column('batch_id', sa.Integer(), nullable=True, index=True),
        sa.Column('reserved_by_user_id', sa.Integer(), nullable=False),
        sa.Column('reserved_until', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['offcut_id'], ['offcuts.id'], name='fk_offcut_reservations_offcut'),
        sa.ForeignKeyConstraint(['order_item_id'], ['order_items.id'],
                                name='fk_offcut_reservations_order_item'),
        sa.ForeignKeyConstraint(['batch_id'], ['production_batches.id'],
                                name='fk_offcut_reservations_batch'),
        sa.ForeignKeyConstraint(['reserved_by_user_id'], ['users.id'],
                                name='fk_offcut_reservations_reserved_by'),
    )

    # Usage rows are append-only
    op.create_table(
        'offcut_usages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('offcut_id', sa.Integer(), nullable=False, index=True),
        sa.Column('order_item_id', sa.Integer(), nullable=True, index=True),
        sa.Column('batch_id', sa.Integer(), nullable=True, index=True),
        sa.Column('usage_type', sa.String(20), nullable=False),
        sa.Column('used_area_mm2', sa.Integer(), nullable=True),
        sa.Column('used_width_mm', sa.Integer(), nullable=True),
        sa.Column('used_height_mm', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['offcut_id'], ['offcuts.id'], name='fk_offcut_usages_offcut'),
        sa.ForeignKeyConstraint(['order_item_id'], ['order_items.id'],
                                name='fk_offcut_usages_order_item'),
        sa.ForeignKeyConstraint(['batch_id'], ['production_batches.id'],
                                name='fk_offcut_usages_batch'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'],
                                name='fk_offcut_usages_created_by'),
    )
    op.create_index('ix_offcut_usages_created_at', 'offcut_usages', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_offcut_usages_created_at', table_name='offcut_usages')
    op.drop_table('offcut_usages')
    op.drop_table('offcut_reservations')
    op.drop_index('ix_offcuts_material_thickness_status', table_name='offcuts')
    op.drop_index('ix_offcuts_location_label', table_name='offcuts')
    op.drop_index('ix_offcuts_status', table_name='offcuts')
    op.drop_table('offcuts')
    op.drop_table('batch_item_links')
    op.drop_table('production_batches')
    op.drop_table('order_items')
    op.drop_table('template_material_hints')
    op.drop_table('product_templates')
    op.drop_index('ix_materials_category', table_name='materials')
    op.drop_table('materials')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
