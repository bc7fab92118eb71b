from enum import Enum
from typing import Dict, Optional, Tuple

class IRType(Enum):
    INTEGER = "INTEGER"
    TEXT = "TEXT"

    # Fallback
    UNKNOWN = "UNKNOWN"

class TypeInfo:
    def __init__(self, ir_type: IRType, length: Optional[int] = None):
        self.ir_type = ir_type
        self.length = length

    def __repr__(self):
        return f"TypeInfo({self.ir_type.value}, l={self.length})"

class TypeRegistry:
    # Source type -> IR type. Only the declared types the game databases use are
    # mapped; anything else is UNKNOWN and must not be silently widened.
    SOURCE_TO_IR: Dict[str, Dict[str, IRType]] = {
        'sqlite': {
            'integer': IRType.INTEGER,
            'text': IRType.TEXT,
        },
    }

    # IR type -> destination column type
    IR_TO_TARGET: Dict[str, Dict[IRType, str]] = {
        'mysql': {
            IRType.INTEGER: 'BIGINT',
            # Requires the utf8mb4 character set on the destination database
            IRType.TEXT: 'TEXT',
        },
        'mssql': {
            IRType.INTEGER: 'BIGINT',
            IRType.TEXT: 'NVARCHAR(4000)',
        },
    }

    @staticmethod
    def _normalize_dialect(dialect: str) -> str:
        dialect_lower = dialect.lower()
        if 'mysql' in dialect_lower or 'mariadb' in dialect_lower:
            return 'mysql'
        if 'mssql' in dialect_lower or 'sqlserver' in dialect_lower:
            return 'mssql'
        if 'sqlite' in dialect_lower:
            return 'sqlite'
        return dialect_lower

    @staticmethod
    def map_to_ir(source_dialect: str, source_type: str) -> TypeInfo:
        """Map source type to IR type"""
        dialect = TypeRegistry._normalize_dialect(source_dialect)
        mappings = TypeRegistry.SOURCE_TO_IR.get(dialect)
        if not mappings or not source_type:
            return TypeInfo(IRType.UNKNOWN)

        base_type, length = TypeRegistry._parse_type_string(source_type.lower().strip())
        ir_type = mappings.get(base_type, IRType.UNKNOWN)
        return TypeInfo(ir_type, length)

    @staticmethod
    def map_from_ir(target_dialect: str, type_info: TypeInfo) -> Optional[str]:
        """Map IR type to destination type, None when there is no mapping"""
        dialect = TypeRegistry._normalize_dialect(target_dialect)
        return TypeRegistry.IR_TO_TARGET.get(dialect, {}).get(type_info.ir_type)

    @staticmethod
    def map_column_type(source_dialect: str, source_type: str, target_dialect: str) -> Optional[str]:
        """Source column type straight to the destination DDL type"""
        return TypeRegistry.map_from_ir(target_dialect, TypeRegistry.map_to_ir(source_dialect, source_type))

    @staticmethod
    def _parse_type_string(type_str: str) -> Tuple[str, Optional[int]]:
        """Parse 'varchar(255)' -> ('varchar', 255)"""
        import re
        match = re.match(r'([a-zA-Z0-9_ ]+?)\s*(?:\((\d+)\))?\s*$', type_str)
        if not match:
            return (type_str.strip(), None)
        length = int(match.group(2)) if match.group(2) else None
        return (match.group(1).strip(), length)
