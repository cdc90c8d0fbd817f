"""
Sample table declarations and fixtures registering them with the fake database.
"""
import pytest
from dbtable import ColumnSchema, Table


class Staff(Table):
    schema_name = 'HR'
    columns = [
        {'COLUMN': 'EMPNO', 'TYPE': 'CHAR', 'LENGTH': 6, 'PRIMARY': 1},
        {'COLUMN': 'NAME', 'TYPE': 'CHAR', 'LENGTH': 12},
    ]


class Employee(Table):
    schema_name = 'HR'
    columns = [
        {'COLUMN': 'EMPNO', 'TYPE': 'CHAR', 'LENGTH': 6, 'OPTS': 'NOT NULL', 'PRIMARY': 1},
        {'COLUMN': 'FIRSTNAME', 'TYPE': 'VARCHAR', 'LENGTH': 12, 'OPTS': 'NOT NULL'},
        {'COLUMN': 'MIDINIT', 'TYPE': 'CHAR', 'DEFAULT': 'X'},
        {'COLUMN': 'LASTNAME', 'TYPE': 'VARCHAR', 'LENGTH': 15, 'OPTS': 'NOT NULL'},
        {'COLUMN': 'SALARY', 'TYPE': 'DECIMAL', 'LENGTH': '9,2', 'DEFAULT': 0},
    ]


class Product(Table):
    """Identity column declared last; it is also the primary column."""
    schema_name = 'SHOP'
    columns = [
        ColumnSchema('PRODNAME', 'VARCHAR', 30, 'NOT NULL'),
        ColumnSchema('BASEPRICE', 'DECIMAL', '8,2'),
        ColumnSchema('PRODID', 'INTEGER', generated_identity=True),
    ]


class Assignment(Table):
    schema_name = 'HR'
    columns = [
        {'COLUMN': 'ASSIGNID', 'TYPE': 'INTEGER', 'OPTS': 'NOT NULL', 'PRIMARY': 1},
        {'COLUMN': 'EMPNO', 'TYPE': 'CHAR', 'LENGTH': 6,
         'FOREIGNKEY': '!Employee! ON DELETE CASCADE'},
        {'COLUMN': 'PRODID', 'TYPE': 'INTEGER', 'FOREIGNKEY': ['!Product!']},
        {'COLUMN': 'ACTIVE', 'TYPE': 'BOOL', 'LENGTH': 1, 'DEFAULT': 'Y'},
        {'COLUMN': 'HOURS', 'TYPE': 'DECIMAL', 'LENGTH': '5,1',
         'CONSTRAINT': 'HOURS_POSITIVE CHECK (HOURS >= 0)'},
        {'COLUMN': 'UPDATED', 'TYPE': 'TIMESTAMP', 'NOCREATE': 1,
         'OPTS': 'NOT NULL GENERATED ALWAYS FOR EACH ROW ON UPDATE AS ROW CHANGE TIMESTAMP'},
    ]


class AuditLog(Table):
    """Table without a primary key."""
    schema_name = 'HR'
    columns = [
        {'COLUMN': 'LOGGED', 'TYPE': 'TIMESTAMP'},
        {'COLUMN': 'MESSAGE', 'TYPE': 'VARCHAR', 'LENGTH': 200},
    ]

    def primary_column(self):
        return None


@pytest.fixture
def staff(fake_db):
    return fake_db.register(Staff)


@pytest.fixture
def employees(fake_db):
    return fake_db.register(Employee)


@pytest.fixture
def products(fake_db):
    return fake_db.register(Product)


@pytest.fixture
def assignments(fake_db, employees, products):
    return fake_db.register(Assignment)


@pytest.fixture
def audit_log(fake_db):
    return fake_db.register(AuditLog)
