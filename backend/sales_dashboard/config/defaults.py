# Default rule tables for the dashboard engine
# These are plain constants; the services wrap them in immutable rule objects
# so callers can substitute their own tables.

# Date patterns accepted without further parsing (full-match regexes)
DATE_PATTERNS = [
    r"^\d{4}-\d{2}-\d{2}$",  # YYYY-MM-DD
    r"^\d{2}/\d{2}/\d{4}$",  # MM/DD/YYYY
    r"^\d{2}-\d{2}-\d{4}$",  # DD-MM-YYYY
    r"^\d{4}/\d{2}/\d{2}$",  # YYYY/MM/DD
]

# strptime formats paired with DATE_PATTERNS, used when converting cells
DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
]

# Free-form dates must be longer than this to count (rejects bare years like "2024")
MIN_FREEFORM_DATE_LENGTH = 6

# Number of non-empty values inspected when classifying a column
TYPE_SAMPLE_SIZE = 100

# Characters stripped before a value is parsed as a number
NUMBER_STRIP_CHARS = ",$"

# Category detection: at most this many distinct values in the sample ...
CATEGORY_MAX_UNIQUE = 30
# ... and the non-empty count must be strictly greater than distinct * ratio
CATEGORY_REPEAT_RATIO = 2

# Columns whose name contains one of these are identity-like and always categories
NAME_LIKE_KEYWORDS = [
    "customer",
    "client",
    "name",
    "user",
    "buyer",
    "seller",
    "vendor",
    "supplier",
    "person",
    "employee",
    "staff",
    "agent",
]

# Number of raw values kept on each column for UI preview
SAMPLE_VALUES_COUNT = 5

# Column-role hints for KPI auto-detection (case-insensitive substring match)
KPI_COLUMN_HINTS = {
    "sales": ["total", "amount", "revenue", "sales", "price", "value", "income"],
    "quantity": ["quantity", "qty", "count", "units", "items"],
    "customer": ["customer", "client", "buyer", "name", "customer_name"],
    "date": ["date", "time", "timestamp", "created", "order_date"],
    "cost": ["cost", "purchase", "expense", "buy", "cogs", "purchase_price", "unit_cost", "buying"],
}

# Hints used to build chart report presets
REPORT_PRESET_HINTS = {
    "customer": ["customer", "client"],
    "product": ["product", "item"],
    "category": ["category", "type"],
    "amount": ["amount", "total", "sales"],
    "quantity": ["quantity", "qty"],
}

# Bucket name used when the group-by cell is missing
UNKNOWN_BUCKET = "Unknown"

# String placeholders treated as missing values (compared trimmed + lowercased)
MISSING_VALUE_PLACEHOLDERS = [
    "null",
    "n/a",
    "na",
    "nan",
    "none",
    "-",
    ".",
    "undefined",
    "missing",
    "#n/a",
    "#na",
    "(blank)",
    "blank",
    "(empty)",
    "empty",
]

# Missing-value issue severity turns "high" above this share of rows
MISSING_HIGH_SEVERITY_RATIO = 0.1

# Delimiters tried when sniffing delimited text
CSV_DELIMITERS = [",", ";", "\t", "|"]

# Encodings tried in order when decoding delimited text
CSV_ENCODINGS = ["utf-8-sig", "cp1252", "latin1"]

DELIMITED_EXTENSIONS = [".csv", ".tsv", ".txt"]
SPREADSHEET_EXTENSIONS = [".xlsx", ".xlsm", ".xls"]
