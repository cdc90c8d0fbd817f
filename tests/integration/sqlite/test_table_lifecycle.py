"""
Row lifecycle against an in-memory SQLite database.
"""
import pandas as pd
import pytest
from dbtable import Row


def add_staff(table, *people):
    for empno, name in people:
        row = table.create_row()
        row['EMPNO'] = empno
        row['NAME'] = name
        assert table.save(row) == 1


class TestLifecycle:

    def test_insert_find_update_delete(self, sqlite_db, sqlite_staff):
        row = sqlite_staff.create_row()
        row['EMPNO'] = '000010'
        row['NAME'] = 'HAAS'
        assert row.save() == 1
        sqlite_db.commit()

        found = sqlite_staff.find_id('000010', single=True)
        assert isinstance(found, Row)
        assert found.as_dict() == {'EMPNO': '000010', 'NAME': 'HAAS'}
        assert found == row

        found['NAME'] = 'KWAN'
        assert found.save() == 1
        assert sqlite_staff.find_id('000010', single=True)['NAME'] == 'KWAN'
        assert sqlite_staff.count() == 1

        assert found.delete() == 1
        assert sqlite_staff.count() == 0
        assert found.delete() == 0

    def test_defaults(self, sqlite_projects):
        row = sqlite_projects.create_row()
        row['PROJNO'] = 'AD3100'
        assert row.save() == 1

        stored = sqlite_projects.find_id('AD3100', single=True)
        assert stored['PROJNAME'] == 'UNNAMED'
        assert stored['ACTIVE'] == 'Y'
        assert stored['RESPEMP'] is None

    def test_rollback(self, sqlite_db, sqlite_staff):
        add_staff(sqlite_staff, ('000010', 'HAAS'))
        sqlite_db.commit()
        add_staff(sqlite_staff, ('000020', 'THOMPSON'))
        assert sqlite_staff.count() == 2

        sqlite_staff.rollback()
        assert sqlite_staff.count() == 1


class TestFind:

    @pytest.fixture(autouse=True)
    def people(self, sqlite_staff):
        add_staff(sqlite_staff, ('000010', 'HAAS'), ('000020', 'THOMPSON'), ('000030', 'KWAN'))

    def test_find_id_many(self, sqlite_staff):
        rows = sqlite_staff.find_id('000010', '000030')
        assert sorted(r['NAME'] for r in rows) == ['HAAS', 'KWAN']

    @pytest.mark.parametrize(('pattern', 'expected'), [
        ('Z%', None),
        ('H%', 'HAAS'),
    ], ids=['none', 'one'])
    def test_find_where_single(self, sqlite_staff, pattern, expected):
        found = sqlite_staff.find_where('NAME LIKE ?', pattern, single=True)
        if expected is None:
            assert found is None
        else:
            assert found['NAME'] == expected

    def test_find_where_single_many(self, sqlite_staff):
        found = sqlite_staff.find_where('NAME LIKE ?', '%A%', single=True)
        assert isinstance(found, list)
        assert sorted(r['NAME'] for r in found) == ['HAAS', 'KWAN']

    def test_find_where_bind_tuple(self, sqlite_staff):
        rows = sqlite_staff.find_where('EMPNO IN ?', ('000010', '000020'))
        assert len(rows) == 2

    def test_count_where(self, sqlite_staff):
        assert sqlite_staff.count_where('NAME LIKE ?', 'T%') == 1
        assert sqlite_staff.count_where('EMPNO > ? AND NAME IN (SELECT NAME FROM !!!)', '000010') == 2

    def test_find_join(self, sqlite_staff, sqlite_projects):
        project = sqlite_projects.create_row()
        project['PROJNO'] = 'AD3100'
        project['PROJNAME'] = 'ADMIN SERVICES'
        project['RESPEMP'] = '000010'
        project.save()

        found = sqlite_projects.find_join(
            '!!! AS P JOIN !SqliteStaff! AS S ON P.RESPEMP = S.EMPNO', 'S.NAME = ?', 'HAAS',
            single=True)
        assert found['PROJNAME'] == 'ADMIN SERVICES'

        staff = sqlite_staff.find_join(
            '!!! AS S JOIN !PROJECT! AS P ON P.RESPEMP = S.EMPNO', 'P.PROJNO = ?', 'AD3100')
        assert [r['NAME'] for r in staff] == ['HAAS']

    def test_select_join(self, sqlite_staff):
        rows = sqlite_staff.select_join('COUNT(*)', '!!! AS A JOIN !!! AS B ON A.EMPNO < B.EMPNO')
        assert rows == [(3,)]

    def test_frame_where(self, sqlite_staff):
        df = sqlite_staff.frame_where('EMPNO > ?', '000010')
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ['EMPNO', 'NAME']
        assert sorted(df['NAME']) == ['KWAN', 'THOMPSON']


class TestExecutionErrors:

    def test_duplicate_primary_key(self, sqlite_staff):
        add_staff(sqlite_staff, ('000010', 'HAAS'))
        row = sqlite_staff.create_row()
        row['EMPNO'] = '000010'
        row['NAME'] = 'DUPLICATE'

        assert sqlite_staff.insert(row) is None
        assert 'UNIQUE constraint failed' in sqlite_staff.error_message
        assert sqlite_staff.error_state == 'SQLITE_CONSTRAINT_PRIMARYKEY'

        assert sqlite_staff.count() == 1
        assert sqlite_staff.last_error is None

    def test_bool_check(self, sqlite_projects):
        row = sqlite_projects.create_row()
        row['PROJNO'] = 'AD3100'
        row['ACTIVE'] = 'X'
        assert row.save() is None
        assert 'CHECK constraint failed' in sqlite_projects.error_message

    def test_bad_where(self, sqlite_staff):
        assert sqlite_staff.find_where('NOSUCHCOLUMN = ?', 1) == []
        assert 'no such column' in sqlite_staff.error_message


class TestStatement:

    def test_prepare_execute_fetch(self, sqlite_db, sqlite_staff):
        add_staff(sqlite_staff, ('000010', 'HAAS'))
        statement = sqlite_db.connection.prepare('SELECT EMPNO, NAME FROM MAIN.STAFF WHERE EMPNO IN ?')
        assert statement.fetchall() is None
        assert statement.execute('000010') is not None
        assert statement.fetchall() == [('000010', 'HAAS')]
        assert statement.column_names == ['EMPNO', 'NAME']

    def test_execute_failure(self, sqlite_db):
        statement = sqlite_db.connection.prepare('SELECT * FROM MAIN.NOWHERE')
        assert statement.execute() is None
        assert 'no such table' in statement.error.message
        assert statement.fetchall() is None

    def test_call_statistics(self, sqlite_db, sqlite_staff):
        calls = sqlite_db.connection.calls
        sqlite_staff.count()
        assert sqlite_db.connection.calls == calls + 1


if __name__ == '__main__':
    pytest.main([__file__])
