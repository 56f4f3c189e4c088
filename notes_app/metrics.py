"""Prometheus metrics for the notes application.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge

# ---------------------------------------------------------------------------
# Document file metrics
# ---------------------------------------------------------------------------

FILE_OPERATIONS = Counter(
    "notes_file_operations_total",
    "Total document file operations",
    ["operation", "outcome"],  # open/save/save_as/new x success/canceled/error
)

# ---------------------------------------------------------------------------
# Settings metrics
# ---------------------------------------------------------------------------

SETTINGS_SAVES = Counter(
    "notes_settings_saves_total",
    "Total settings save attempts",
    ["outcome"],  # success, error
)

# ---------------------------------------------------------------------------
# Note store metrics
# ---------------------------------------------------------------------------

NOTES_IN_MEMORY = Gauge(
    "notes_in_memory",
    "Number of notes currently held by the note store",
)
