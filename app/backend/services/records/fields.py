"""
Well-known record keys and sentinel values.

Records are plain ``dict[str, str | float | int]`` mappings. Most keys come
straight from the model output, but a few carry meaning for the service.
"""

# Provenance label, present on every record
SOURCE_FILE_KEY = "arquivo_original"

# Identity of the person a row belongs to
IDENTITY_KEY = "nome"

# Hour measures summed per identity
WORKED_HOURS_KEY = "total_horas_trabalhadas"
OVERTIME_HOURS_KEY = "total_horas_extras"

# Free-text summary the model may append after the rows
SUMMARY_KEY = "resumo_executivo_mensal"

# Placeholder key for documents that produced no records
ERROR_KEY = "erro_processamento"

# Keys that are never grouped or renamed
RESERVED_KEYS = frozenset({SOURCE_FILE_KEY, SUMMARY_KEY, ERROR_KEY})

NOT_AVAILABLE = "N/A"
UNKNOWN_IDENTITY = "Desconhecido"

# Field-name fragments that mark a value as numeric
NUMERIC_FIELD_MARKERS = ("horas", "hours", "total")
CURRENCY_FIELD_PREFIX = "valor"
