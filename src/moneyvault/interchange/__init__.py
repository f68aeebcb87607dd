"""CSV interchange for transactions."""

from .csv_codec import (
    CSV_HEADERS,
    ImportReport,
    csv_template,
    export_transactions,
    import_into_store,
    import_transactions,
    parse_delimited_text,
    sanitize_field,
)

__all__ = [
    "CSV_HEADERS",
    "ImportReport",
    "csv_template",
    "export_transactions",
    "import_into_store",
    "import_transactions",
    "parse_delimited_text",
    "sanitize_field",
]
