"""mechanics and appointments

Revision ID: 0001
Revises: 
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('mechanics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_mechanics_order', 'mechanics', ['order'])

    op.create_table('appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mechanic_id', sa.Integer(), sa.ForeignKey('mechanics.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=5), nullable=False),
        sa.Column('client_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('service_description', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='zero'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('mechanic_id', 'date', 'time', name='uq_appointment_slot'),
    )
    op.create_index('ix_appointments_date', 'appointments', ['date'])
    op.create_index('ix_appointments_mechanic_date', 'appointments', ['mechanic_id', 'date'])

def downgrade():
    op.drop_index('ix_appointments_mechanic_date', table_name='appointments')
    op.drop_index('ix_appointments_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_mechanics_order', table_name='mechanics')
    op.drop_table('mechanics')
