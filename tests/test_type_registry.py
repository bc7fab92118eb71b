#!/usr/bin/env python3
"""
Column type mapping tests
"""

import unittest

from core.type_registry import IRType, TypeRegistry


class TestTypeRegistry(unittest.TestCase):

    def test_integer_maps_to_bigint(self):
        self.assertEqual(TypeRegistry.map_column_type('sqlite', 'INTEGER', 'mysql'), 'BIGINT')
        self.assertEqual(TypeRegistry.map_column_type('sqlite', 'integer', 'mssql'), 'BIGINT')

    def test_text_per_family(self):
        self.assertEqual(TypeRegistry.map_column_type('sqlite', 'TEXT', 'mysql'), 'TEXT')
        self.assertEqual(TypeRegistry.map_column_type('sqlite', 'TEXT', 'mssql'), 'NVARCHAR(4000)')
        self.assertEqual(TypeRegistry.map_column_type('sqlite', 'TEXT', 'mariadb'), 'TEXT')

    def test_unhandled_types(self):
        for source_type in ('BLOB', 'REAL', 'NUMERIC', 'VARCHAR(20)', ''):
            with self.subTest(source_type=source_type):
                self.assertIsNone(TypeRegistry.map_column_type('sqlite', source_type, 'mysql'))

    def test_map_to_ir(self):
        self.assertEqual(TypeRegistry.map_to_ir('sqlite', ' Integer ').ir_type, IRType.INTEGER)
        self.assertEqual(TypeRegistry.map_to_ir('sqlite', 'BLOB').ir_type, IRType.UNKNOWN)
        self.assertEqual(TypeRegistry.map_to_ir('postgres', 'INTEGER').ir_type, IRType.UNKNOWN)

    def test_parse_type_string(self):
        self.assertEqual(TypeRegistry._parse_type_string('varchar(255)'), ('varchar', 255))
        self.assertEqual(TypeRegistry._parse_type_string('text'), ('text', None))


if __name__ == "__main__":
    unittest.main()
