"""check constraints for enum-like columns

Revision ID: 0002_enum_checks
Revises: 0001_initial
Create Date: 2026-10-19 18:00:00

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = '0002_enum_checks'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_check_constraint('ck_users_gender', 'users', "gender IN ('male', 'female', 'other')")
    op.create_check_constraint('ck_matches_distinct_users', 'matches', 'user1_id <> user2_id')
    op.create_check_constraint('ck_matches_match_type', 'matches', "match_type IN ('random', 'filtered')")
    op.create_check_constraint(
        'ck_matches_status', 'matches', "status IN ('pending', 'accepted', 'rejected', 'expired')"
    )
    op.create_check_constraint(
        'ck_matches_user1_status', 'matches', "user1_status IN ('pending', 'interested', 'passed')"
    )
    op.create_check_constraint(
        'ck_matches_user2_status', 'matches', "user2_status IN ('pending', 'interested', 'passed')"
    )


def downgrade() -> None:
    op.drop_constraint('ck_matches_user2_status', 'matches', type_='check')
    op.drop_constraint('ck_matches_user1_status', 'matches', type_='check')
    op.drop_constraint('ck_matches_status', 'matches', type_='check')
    op.drop_constraint('ck_matches_match_type', 'matches', type_='check')
    op.drop_constraint('ck_matches_distinct_users', 'matches', type_='check')
    op.drop_constraint('ck_users_gender', 'users', type_='check')
