"""matrix core schema: members, hierarchy, reports, finance groups

Revision ID: 0001_matrix_core_schema
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_matrix_core_schema"
down_revision = None
branch_labels = None
depends_on = None


ministry_type = sa.Enum(
    "PRESIDENT_PASTOR",
    "PASTOR",
    "DISCIPULADOR",
    "LEADER",
    "LEADER_IN_TRAINING",
    "MEMBER",
    "REGULAR_ATTENDEE",
    "VISITOR",
    name="ministry_type",
)
member_gender = sa.Enum("MALE", "FEMALE", "OTHER", name="member_gender")
member_marital_status = sa.Enum(
    "SINGLE", "MARRIED", "COHABITATING", "DIVORCED", "WIDOWED", name="member_marital_status"
)
group_invitation_status = sa.Enum("PENDING", "ACCEPTED", "DECLINED", name="group_invitation_status")
category_type = sa.Enum("EXPENSE", "INCOME", name="category_type")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "matrices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "matrix_domains",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_matrix_domains_domain", "matrix_domains", ["domain"], unique=True)
    op.create_index("ix_matrix_domains_matrix_id", "matrix_domains", ["matrix_id"])

    op.create_table(
        "ministries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", ministry_type, nullable=False, server_default="MEMBER"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("name", "matrix_id", name="uq_ministries_name_matrix"),
    )
    op.create_index("ix_ministries_matrix_id", "ministries", ["matrix_id"])

    op.create_table(
        "winner_paths",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("name", "matrix_id", name="uq_winner_paths_name_matrix"),
    )
    op.create_index("ix_winner_paths_matrix_id", "winner_paths", ["matrix_id"])

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("name", "matrix_id", name="uq_roles_name_matrix"),
    )
    op.create_index("ix_roles_matrix_id", "roles", ["matrix_id"])

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=25), nullable=True),
        sa.Column("password", sa.String(length=255), nullable=True),
        sa.Column("has_system_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_default_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("gender", member_gender, nullable=True),
        sa.Column("marital_status", member_marital_status, nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("spouse_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "ministry_position_id",
            sa.Integer(),
            sa.ForeignKey("ministries.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "winner_path_id",
            sa.Integer(),
            sa.ForeignKey("winner_paths.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("celula_id", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=True)
    op.create_index("ix_members_celula_id", "members", ["celula_id"])

    op.create_table(
        "member_matrices",
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index("ix_member_matrices_matrix_id", "member_matrices", ["matrix_id"])
    op.create_table(
        "member_roles",
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "redes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column(
            "pastor_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("name", "matrix_id", name="uq_redes_name_matrix"),
    )
    op.create_index("ix_redes_pastor_member_id", "redes", ["pastor_member_id"])
    op.create_index("ix_redes_matrix_id", "redes", ["matrix_id"])

    op.create_table(
        "discipulados",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rede_id", sa.Integer(), sa.ForeignKey("redes.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "discipulador_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_discipulados_rede_id", "discipulados", ["rede_id"])
    op.create_index("ix_discipulados_discipulador_member_id", "discipulados", ["discipulador_member_id"])
    op.create_index("ix_discipulados_matrix_id", "discipulados", ["matrix_id"])

    op.create_table(
        "celulas",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=True),
        sa.Column("time", sa.String(length=5), nullable=True),
        sa.Column(
            "leader_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "vice_leader_member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "discipulado_id",
            sa.Integer(),
            sa.ForeignKey("discipulados.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("name", "matrix_id", name="uq_celulas_name_matrix"),
    )
    op.create_index("ix_celulas_leader_member_id", "celulas", ["leader_member_id"])
    op.create_index("ix_celulas_vice_leader_member_id", "celulas", ["vice_leader_member_id"])
    op.create_index("ix_celulas_discipulado_id", "celulas", ["discipulado_id"])
    op.create_index("ix_celulas_matrix_id", "celulas", ["matrix_id"])

    # Deleting a celula that still has members must fail at the database too.
    op.create_foreign_key(
        "fk_members_celula_id",
        "members",
        "celulas",
        ["celula_id"],
        ["id"],
        ondelete="RESTRICT",
    )

    op.create_table(
        "celula_leaders_in_training",
        sa.Column("celula_id", sa.Integer(), sa.ForeignKey("celulas.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_index(
        "ix_celula_leaders_in_training_member_id",
        "celula_leaders_in_training",
        ["member_id"],
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("celula_id", sa.Integer(), sa.ForeignKey("celulas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("matrix_id", sa.Integer(), sa.ForeignKey("matrices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_reports_celula_id", "reports", ["celula_id"])
    op.create_index("ix_reports_matrix_id", "reports", ["matrix_id"])
    op.create_index("ix_reports_created_at", "reports", ["created_at"])
    op.create_table(
        "report_attendances",
        sa.Column("report_id", sa.Integer(), sa.ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_refresh_tokens_token", "refresh_tokens", ["token"], unique=True)
    op.create_index("ix_refresh_tokens_member_id", "refresh_tokens", ["member_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_groups_owner_id", "groups", ["owner_id"])

    op.create_table(
        "group_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("can_view_transactions", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_manage_own_transactions", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_manage_group_transactions", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_view_categories", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_manage_categories", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_view_subcategories", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_manage_subcategories", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_view_budgets", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_manage_budgets", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_view_accounts", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_manage_own_accounts", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_manage_group_accounts", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("can_manage_group", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "name", name="uq_group_roles_group_name"),
    )
    op.create_index("ix_group_roles_group_id", "group_roles", ["group_id"])

    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("group_roles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "member_id", name="uq_group_members_group_member"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_member_id", "group_members", ["member_id"])

    op.create_table(
        "group_invitations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invited_by_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("group_roles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", group_invitation_status, nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_group_invitations_group_id", "group_invitations", ["group_id"])
    op.create_index("ix_group_invitations_member_id", "group_invitations", ["member_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", category_type, nullable=False, server_default="EXPENSE"),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("members.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_categories_owner_id", "categories", ["owner_id"])
    op.create_index("ix_categories_group_id", "categories", ["group_id"])


def downgrade() -> None:
    op.drop_table("categories")
    op.drop_table("group_invitations")
    op.drop_table("group_members")
    op.drop_table("group_roles")
    op.drop_table("groups")
    op.drop_table("refresh_tokens")
    op.drop_table("report_attendances")
    op.drop_table("reports")
    op.drop_table("celula_leaders_in_training")
    op.drop_constraint("fk_members_celula_id", "members", type_="foreignkey")
    op.drop_table("celulas")
    op.drop_table("discipulados")
    op.drop_table("redes")
    op.drop_table("member_roles")
    op.drop_table("member_matrices")
    op.drop_table("members")
    op.drop_table("roles")
    op.drop_table("winner_paths")
    op.drop_table("ministries")
    op.drop_table("matrix_domains")
    op.drop_table("matrices")

    bind = op.get_bind()
    for enum in (category_type, group_invitation_status, member_marital_status, member_gender, ministry_type):
        enum.drop(bind, checkfirst=True)
