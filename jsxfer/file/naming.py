"""
Transfer Naming

The transfer name doubles as the stream name and as the destination file
name on download, so it must be safe for both. Only the final path
component is kept; '.' and ' ' become '_'.

Two files with the same base name map to the same transfer.
"""

import os

_UNSAFE_CHARS = ('.', ' ')


def canonical_name(path: str) -> str:
    """
    Derive the transfer identifier for a path.

    Examples:
        canonical_name('/tmp/my report.pdf') -> 'my_report_pdf'
        canonical_name('a/b/../data.bin/')   -> 'data_bin'
    """
    name = os.path.basename(os.path.normpath(path))
    for char in _UNSAFE_CHARS:
        name = name.replace(char, '_')
    return name
