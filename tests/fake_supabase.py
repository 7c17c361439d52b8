"""
In-memory stand-in for the supabase client's table query builder.
Each execute() runs under one lock, like a single-statement row update.
"""
import copy
import threading


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.mode = 'select'
        self.columns = '*'
        self.payload = None
        self.filters = []
        self.ordering = []
        self.row_limit = None

    def select(self, columns='*'):
        self.mode = 'select'
        self.columns = columns
        return self

    def insert(self, row):
        self.mode = 'insert'
        self.payload = row
        return self

    def update(self, fields):
        self.mode = 'update'
        self.payload = fields
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def _project(self, row):
        if self.columns.strip() == '*':
            return copy.deepcopy(row)
        wanted = [c.strip() for c in self.columns.split(',')]
        return {c: copy.deepcopy(row.get(c)) for c in wanted}

    def execute(self):
        with self.client.lock:
            self.client.calls.append((self.table, self.mode))
            rows = self.client.tables.setdefault(self.table, [])

            if self.mode == 'insert':
                new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
                for row in new_rows:
                    rows.append(copy.deepcopy(row))
                return FakeResponse([copy.deepcopy(r) for r in new_rows])

            matched = [r for r in rows if self._matches(r)]

            if self.mode == 'update':
                for row in matched:
                    row.update(copy.deepcopy(self.payload))
                return FakeResponse([copy.deepcopy(r) for r in matched])

            for column, desc in reversed(self.ordering):
                matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            if self.row_limit is not None:
                matched = matched[:self.row_limit]
            return FakeResponse([self._project(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.lock = threading.Lock()

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, name, *rows):
        self.tables.setdefault(name, []).extend(copy.deepcopy(list(rows)))

    def row(self, name, row_id):
        for row in self.tables.get(name, []):
            if row['id'] == row_id:
                return row
        return None
