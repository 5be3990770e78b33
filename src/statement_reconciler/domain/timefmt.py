from datetime import datetime

STATEMENT_DATE_FORMATS = ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")
EXPORT_DATE_FORMAT = "%m/%d/%Y"


def parse_statement_date(value: str) -> datetime:
    for fmt in STATEMENT_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognized statement date '{value}'")


def parse_export_date(value: str) -> datetime:
    # strptime accepts both 1/2/2024 and 01/02/2024
    return datetime.strptime(value.strip(), EXPORT_DATE_FORMAT)


def format_duration(seconds: float) -> str:
    if seconds <= 0:
        return "0 ms"
    if seconds < 1:
        return f"{seconds * 1000:.1f} ms"
    if seconds < 60:
        return f"{seconds:.2f} s"
    return f"{seconds / 60:.2f} min"
