"""per-user category slugs, category version, pending email

Databases where the app already dropped the global slug index at runtime may
hold same-user duplicate slugs. They are renamed to slug-1, slug-2, ... before the compound
unique constraint is created; the oldest category keeps its slug.

Revision ID: 0002_per_user_slugs
Revises: 0001_initial_schema
Create Date: 2025-03-02 18:41:07.530912

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_per_user_slugs'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None

categories = sa.table(
    'categories',
    sa.column('id', sa.Uuid()),
    sa.column('user_id', sa.Uuid()),
    sa.column('slug', sa.String()),
    sa.column('created_at', sa.DateTime()),
)


def rename_duplicate_slugs(bind) -> None:
    rows = bind.execute(
        sa.select(categories.c.id, categories.c.user_id, categories.c.slug)
        .order_by(categories.c.created_at, categories.c.id)
    ).all()

    taken = {(row.user_id, row.slug) for row in rows}
    kept = set()
    for row in rows:
        key = (row.user_id, row.slug)
        if key not in kept:
            kept.add(key)
            continue

        counter = 1
        while (row.user_id, f"{row.slug}-{counter}") in taken:
            counter += 1
        new_slug = f"{row.slug}-{counter}"
        taken.add((row.user_id, new_slug))
        bind.execute(
            sa.update(categories).where(categories.c.id == row.id).values(slug=new_slug)
        )


def upgrade() -> None:
    op.drop_index('ix_categories_slug', table_name='categories')
    rename_duplicate_slugs(op.get_bind())

    with op.batch_alter_table('categories') as batch_op:
        batch_op.add_column(sa.Column('version', sa.Integer(), nullable=False, server_default='1'))
        batch_op.create_unique_constraint('uq_categories_user_id_slug', ['user_id', 'slug'])

    with op.batch_alter_table('users') as batch_op:
        batch_op.add_column(sa.Column('pending_email', sa.String(length=320), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_column('pending_email')

    with op.batch_alter_table('categories') as batch_op:
        batch_op.drop_constraint('uq_categories_user_id_slug', type_='unique')
        batch_op.drop_column('version')

    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)
