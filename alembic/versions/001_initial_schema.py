"""Initial schema - permission catalog, roles, grants and groups.

Revision ID: 001
Revises:
Create Date: 2025-01-25

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _grant_columns() -> list[sa.Column]:
    return [
        sa.Column("effect", sa.String(10), nullable=False),
        sa.Column("conditions", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "permission",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("resource", sa.String(50), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
    )
    op.create_index("ix_permission_name", "permission", ["name"], unique=True)
    op.create_index(
        "ix_permission_resource_action_scope",
        "permission",
        ["resource", "action", "scope"],
        unique=True,
    )

    op.create_table(
        "custom_role",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_custom_role_name", "custom_role", ["name"], unique=True)

    op.create_table(
        "role_permission",
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), primary_key=True),
        sa.Column("permission_id", sa.UUID(), sa.ForeignKey("permission.id", ondelete="CASCADE"), nullable=False),
        *_grant_columns(),
    )

    op.create_table(
        "role_inheritance",
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("parent_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.CheckConstraint("role_id <> parent_id", name="ck_role_inheritance_not_self"),
    )
    op.create_index("ix_role_inheritance_parent", "role_inheritance", ["parent_id"])

    op.create_table(
        "user_role",
        sa.Column("subject", sa.String(255), primary_key=True),
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("granted_by", sa.String(255), nullable=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_user_role_role", "user_role", ["role_id"])

    op.create_table(
        "user_permission",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("permission_id", sa.UUID(), sa.ForeignKey("permission.id", ondelete="CASCADE"), nullable=False),
        *_grant_columns(),
        sa.Column("granted_by", sa.String(255), nullable=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("reason", sa.Text(), nullable=True),
    )
    op.create_index("ix_user_permission_subject", "user_permission", ["subject"])
    op.create_index(
        "ix_user_permission_expires",
        "user_permission",
        ["expires_at"],
        postgresql_where=sa.text("expires_at IS NOT NULL"),
    )

    op.create_table(
        "permission_group",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_permission_group_name", "permission_group", ["name"], unique=True)

    op.create_table(
        "group_member",
        sa.Column("group_id", sa.UUID(), sa.ForeignKey("permission_group.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("subject", sa.String(255), primary_key=True),
    )
    op.create_index("ix_group_member_subject", "group_member", ["subject"])

    op.create_table(
        "group_role",
        sa.Column("group_id", sa.UUID(), sa.ForeignKey("permission_group.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.UUID(), sa.ForeignKey("custom_role.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
    )

    op.create_table(
        "group_inheritance",
        sa.Column("group_id", sa.UUID(), sa.ForeignKey("permission_group.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("parent_id", sa.UUID(), sa.ForeignKey("permission_group.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
    )

    # Catalog: type-scoped permission for every resource/action pair in use,
    # own-scoped edit/delete for content, resource-scoped edit for content.
    op.execute("""
        INSERT INTO permission (id, name, resource, action, scope, description)
        SELECT gen_random_uuid(), r || '.' || a, r, a, 'type', NULL
        FROM unnest(ARRAY['song','arrangement','setlist']) AS r,
             unnest(ARRAY['create','read','update','delete','approve','reject',
                          'flag','export','import','bulk_edit']) AS a
    """)
    op.execute("""
        INSERT INTO permission (id, name, resource, action, scope, description)
        SELECT gen_random_uuid(), r || '.' || a || '.' || s, r, a, s, NULL
        FROM unnest(ARRAY['song','arrangement','setlist']) AS r,
             unnest(ARRAY['update','delete']) AS a,
             unnest(ARRAY['own','resource']) AS s
    """)
    op.execute("""
        INSERT INTO permission (id, name, resource, action, scope, description)
        SELECT gen_random_uuid(), r || '.' || a, r, a, 'global', NULL
        FROM (VALUES
            ('user','read'), ('user','update'), ('user','assign_role'), ('user','revoke_role'),
            ('role','create'), ('role','read'), ('role','update'), ('role','delete'),
            ('system','read'), ('system','update')
        ) AS v(r, a)
    """)

    op.execute("""
        INSERT INTO custom_role (id, name, description, is_system, is_active, created_at, updated_at) VALUES
        (gen_random_uuid(), 'viewer', 'Read-only access', true, true, now(), now()),
        (gen_random_uuid(), 'editor', 'Create and edit content', true, true, now(), now()),
        (gen_random_uuid(), 'admin', 'Full access including role management', true, true, now(), now())
    """)
    op.execute("""
        INSERT INTO role_inheritance (role_id, parent_id, position)
        SELECT c.id, p.id, 0 FROM custom_role c, custom_role p
        WHERE (c.name, p.name) IN (('editor', 'viewer'), ('admin', 'editor'))
    """)
    op.execute("""
        INSERT INTO role_permission (role_id, position, permission_id, effect)
        SELECT r.id, row_number() OVER (ORDER BY p.name) - 1, p.id, 'allow'
        FROM custom_role r, permission p
        WHERE r.name = 'viewer' AND p.action = 'read' AND p.scope = 'type'
    """)
    op.execute("""
        INSERT INTO role_permission (role_id, position, permission_id, effect)
        SELECT r.id, row_number() OVER (ORDER BY p.name) - 1, p.id, 'allow'
        FROM custom_role r, permission p
        WHERE r.name = 'editor'
          AND ((p.action IN ('create', 'flag', 'export') AND p.scope = 'type')
               OR (p.action IN ('update', 'delete') AND p.scope = 'own'))
    """)
    op.execute("""
        INSERT INTO role_permission (role_id, position, permission_id, effect)
        SELECT r.id, row_number() OVER (ORDER BY p.name) - 1, p.id, 'allow'
        FROM custom_role r, permission p
        WHERE r.name = 'admin' AND p.scope IN ('type', 'global')
    """)


def downgrade() -> None:
    op.drop_table("group_inheritance")
    op.drop_table("group_role")
    op.drop_table("group_member")
    op.drop_table("permission_group")
    op.drop_table("user_permission")
    op.drop_table("user_role")
    op.drop_table("role_inheritance")
    op.drop_table("role_permission")
    op.drop_table("custom_role")
    op.drop_table("permission")
