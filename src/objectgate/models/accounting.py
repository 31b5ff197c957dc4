"""
Quota accounting triggers.

``users.total_space_used`` is owned by the database: every insert into
``files`` adds the row's ``content_size`` to its owner and every delete
subtracts it, in the same statement as the row change. Historical versions
count as much as latest ones. The gateway never writes the aggregate itself.

The DDL is attached to the ``files`` table so ``metadata.create_all`` installs
it, and the initial Alembic revision reuses the PostgreSQL statements.
"""

from sqlalchemy import DDL, Table, event

POSTGRES_ACCOUNTING_DDL = (
    """
    CREATE OR REPLACE FUNCTION increment_user_space()
    RETURNS TRIGGER AS $$
    BEGIN
        UPDATE users
        SET total_space_used = total_space_used + NEW.content_size,
            updated_at = timezone('utc', now())
        WHERE user_id = NEW.user_id;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE TRIGGER trigger_increment_user_space
    AFTER INSERT ON files
    FOR EACH ROW
    EXECUTE FUNCTION increment_user_space()
    """,
    """
    CREATE OR REPLACE FUNCTION decrement_user_space()
    RETURNS TRIGGER AS $$
    BEGIN
        UPDATE users
        SET total_space_used = total_space_used - OLD.content_size,
            updated_at = timezone('utc', now())
        WHERE user_id = OLD.user_id;
        RETURN OLD;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE TRIGGER trigger_decrement_user_space
    AFTER DELETE ON files
    FOR EACH ROW
    EXECUTE FUNCTION decrement_user_space()
    """,
)

POSTGRES_ACCOUNTING_DROP = (
    "DROP TRIGGER IF EXISTS trigger_increment_user_space ON files",
    "DROP FUNCTION IF EXISTS increment_user_space()",
    "DROP TRIGGER IF EXISTS trigger_decrement_user_space ON files",
    "DROP FUNCTION IF EXISTS decrement_user_space()",
)

SQLITE_ACCOUNTING_DDL = (
    """
    CREATE TRIGGER trigger_increment_user_space
    AFTER INSERT ON files
    BEGIN
        UPDATE users
        SET total_space_used = total_space_used + NEW.content_size,
            updated_at = CURRENT_TIMESTAMP
        WHERE user_id = NEW.user_id;
    END
    """,
    """
    CREATE TRIGGER trigger_decrement_user_space
    AFTER DELETE ON files
    BEGIN
        UPDATE users
        SET total_space_used = total_space_used - OLD.content_size,
            updated_at = CURRENT_TIMESTAMP
        WHERE user_id = OLD.user_id;
    END
    """,
)


def attach_accounting_triggers(files_table: Table) -> None:
    for statement in POSTGRES_ACCOUNTING_DDL:
        event.listen(files_table, "after_create", DDL(statement).execute_if(dialect="postgresql"))
    for statement in SQLITE_ACCOUNTING_DDL:
        event.listen(files_table, "after_create", DDL(statement).execute_if(dialect="sqlite"))
