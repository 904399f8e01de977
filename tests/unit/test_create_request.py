import pytest
from sqlob import CreateRequest, ExecutionContext, get_configuration

from tests.fixtures.models import Employee, Owner


@pytest.fixture
def pg_context(mocker):
    """Execution context over a mocked PostgreSQL connection with no tables"""
    connection = mocker.Mock()
    connection.dialect = 'postgresql'
    connection.configuration = get_configuration('postgresql')
    cursor = connection.dbapi_connection.cursor.return_value
    cursor.fetchall.return_value = []
    cursor.description = None
    return ExecutionContext(connection), cursor


def _statements(cursor):
    return [call.args[0] for call in cursor.execute.call_args_list if call.args[0].startswith(('CREATE', 'ALTER'))]


def test_forward_foreign_keys_added_after_tables(pg_context):
    """Test a reference cycle is created without naming a missing table"""
    context, cursor = pg_context

    assert CreateRequest(Employee).execute(context).count == 2

    assert _statements(cursor) == [
        'CREATE TABLE "Department" ("id" CHAR(36) PRIMARY KEY, "title" TEXT, "head" CHAR(36))',
        'CREATE TABLE "Employee" ("id" CHAR(36) PRIMARY KEY, "name" TEXT, "department" CHAR(36), '
        'FOREIGN KEY ("department") REFERENCES "Department"("id"))',
        'ALTER TABLE "Department" ADD FOREIGN KEY ("head") REFERENCES "Employee"("id")',
    ]


def test_acyclic_references_created_inline(pg_context):
    context, cursor = pg_context

    CreateRequest(Owner).execute(context)

    assert _statements(cursor) == [
        'CREATE TABLE "Address" ("id" CHAR(36) PRIMARY KEY, "street" TEXT, "city" TEXT)',
        'CREATE TABLE "Owner" ("id" CHAR(36) PRIMARY KEY, "name" TEXT, "address" CHAR(36), '
        'FOREIGN KEY ("address") REFERENCES "Address"("id"))',
    ]
