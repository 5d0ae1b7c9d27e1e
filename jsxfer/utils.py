"""Formatting helpers for transfer reports."""


def format_size(bytes_count: int) -> str:
    """
    Format bytes as human-readable size.

    Uses 1024 as the base: 512 -> '512 B', 1536 -> '1.50 KB'.
    """
    if bytes_count < 1024:
        return f"{bytes_count} B"
    size = float(bytes_count)
    for unit in ['KB', 'MB', 'GB', 'TB', 'PB']:
        size /= 1024
        if size < 1024:
            return f"{size:.2f} {unit}"
    return f"{size / 1024:.2f} EB"


def format_duration(seconds: float) -> str:
    """Format a duration: '850ms', '12.34s', '3m05.2s'."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes)}m{rest:04.1f}s"
