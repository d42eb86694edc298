"""create_signature_tables

Revision ID: 202601090001
Revises:
Create Date: 2026-01-09 15:39:54.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '202601090001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, signature_requests, signature_spots and audit_logs"""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('role', sa.Enum('USER', 'ADMIN', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'signature_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('access_token', sa.String(length=64), nullable=False),
        sa.Column('signer_id', sa.Integer(), nullable=True),
        sa.Column('signer_name', sa.String(length=200), nullable=True),
        sa.Column('signer_email', sa.String(length=255), nullable=True),
        sa.Column('store_name', sa.String(length=200), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'SIGNED', name='signaturerequeststatus'), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('original_document_path', sa.String(length=500), nullable=False),
        sa.Column('signed_document_path', sa.String(length=500), nullable=True),
        sa.Column('viewed_at', sa.DateTime(), nullable=True),
        sa.Column('signed_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['signer_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_signature_requests_access_token', 'signature_requests', ['access_token'], unique=True)
    op.create_index('ix_signature_requests_signer_id', 'signature_requests', ['signer_id'])
    op.create_index('ix_signature_requests_status', 'signature_requests', ['status'])
    op.create_index('ix_signature_requests_created_by', 'signature_requests', ['created_by'])

    op.create_table(
        'signature_spots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.String(length=36), nullable=False),
        sa.Column('page_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('x_position', sa.Float(), nullable=False),
        sa.Column('y_position', sa.Float(), nullable=False),
        sa.Column('width', sa.Float(), nullable=False, server_default='200'),
        sa.Column('height', sa.Float(), nullable=False, server_default='80'),
        sa.Column('label', sa.String(length=100), nullable=True, server_default='Sign here'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['signature_requests.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_signature_spots_id', 'signature_spots', ['id'])
    op.create_index('ix_signature_spots_request_id', 'signature_spots', ['request_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.Enum(
            'SIGNATURE_REQUEST_CREATED', 'SIGNATURE_REQUEST_SENT', 'SIGNATURE_REQUEST_VIEWED',
            'SIGNATURE_REQUEST_SIGNED', 'SIGNATURE_FAILED', 'DOCUMENT_UPLOADED', 'DOCUMENT_DOWNLOADED',
            'SYSTEM_STARTUP', 'SYSTEM_SHUTDOWN', 'UNHANDLED_EXCEPTION',
            name='auditeventtype'), nullable=False),
        sa.Column('event_level', sa.Enum('INFO', 'WARNING', 'ERROR', 'CRITICAL', name='auditlevel'), nullable=False),
        sa.Column('event_message', sa.Text(), nullable=False),
        sa.Column('event_details', sa.JSON(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('resource_type', sa.String(length=50), nullable=True),
        sa.Column('resource_id', sa.String(length=100), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('request_path', sa.String(length=500), nullable=True),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_event_type', 'audit_logs', ['event_type'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_resource_id', 'audit_logs', ['resource_id'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade() -> None:
    """Drop signature tables"""
    op.drop_table('audit_logs')
    op.drop_table('signature_spots')
    op.drop_table('signature_requests')
    op.drop_table('users')
    op.execute("DROP TYPE IF EXISTS auditlevel")
    op.execute("DROP TYPE IF EXISTS auditeventtype")
    op.execute("DROP TYPE IF EXISTS signaturerequeststatus")
    op.execute("DROP TYPE IF EXISTS userrole")
