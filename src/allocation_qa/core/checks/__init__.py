"""Auto-import all check modules so their @registry.register decorators fire."""

from allocation_qa.core.checks import (  # noqa: F401
    advisories,
    capacity,
    duplicates,
    json_attrs,
    lists,
    phases,
    ranges,
    references,
    required,
)
