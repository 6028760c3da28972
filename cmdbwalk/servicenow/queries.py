"""Table names, field lists and encoded-query builders for the CMDB walk."""

from __future__ import annotations

CI_TABLE = "cmdb_ci"
REL_TABLE = "cmdb_rel_ci"

CI_FIELDS = ("sys_id", "name", "sys_class_name")
CI_CLASS_FIELDS = ("sys_class_name",)
REL_FIELDS = ("parent", "child", "type")

# Candidates fetched when resolving a root CI by name
ROOT_NAME_LIMIT = 5
# Relationship rows considered per expansion; extra rows are dropped
REL_ROW_LIMIT = 100

# Raw sys_id plus display value for every reference field
DISPLAY_ALL = "all"


def or_(*clauses: str) -> str:
    return "^OR".join(c for c in clauses if c)


def escape(value: str) -> str:
    """A literal ``^`` in a value is written ``^^`` so it cannot open a new clause."""
    return value.replace("^", "^^")


def eq(field: str, value: str) -> str:
    return f"{field}={escape(value)}"


def incident_to(sys_id: str) -> str:
    """Rows in which ``sys_id`` is either the parent or the child CI."""
    return or_(eq("parent", sys_id), eq("child", sys_id))


def name_is(name: str) -> str:
    return eq("name", name)
