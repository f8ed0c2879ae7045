"""Column schema for the three entity tables."""

from __future__ import annotations

from enum import Enum

from allocation_qa.core.errors import UnknownEntityError


class Entity(str, Enum):
    CLIENTS = "clients"
    WORKERS = "workers"
    TASKS = "tasks"
    GENERAL = "general"  # dataset-wide findings with no row


#: Entities that own a table (GENERAL is a finding scope only)
TABLE_ENTITIES: tuple[Entity, ...] = (Entity.CLIENTS, Entity.WORKERS, Entity.TASKS)

COLUMNS: dict[Entity, list[str]] = {
    Entity.CLIENTS: [
        "ClientID", "ClientName", "PriorityLevel",
        "RequestedTaskIDs", "GroupTag", "AttributesJSON",
    ],
    Entity.WORKERS: [
        "WorkerID", "WorkerName", "Skills", "AvailableSlots",
        "MaxLoadPerPhase", "WorkerGroup", "QualificationLevel",
    ],
    Entity.TASKS: [
        "TaskID", "TaskName", "Category", "Duration",
        "RequiredSkills", "PreferredPhases", "MaxConcurrent",
    ],
}

ID_COLUMNS: dict[Entity, str] = {
    Entity.CLIENTS: "ClientID",
    Entity.WORKERS: "WorkerID",
    Entity.TASKS: "TaskID",
}

NAME_COLUMNS: dict[Entity, str] = {
    Entity.CLIENTS: "ClientName",
    Entity.WORKERS: "WorkerName",
    Entity.TASKS: "TaskName",
}

NUMERIC_COLUMNS: dict[Entity, list[str]] = {
    Entity.CLIENTS: ["PriorityLevel"],
    Entity.WORKERS: ["MaxLoadPerPhase", "QualificationLevel"],
    Entity.TASKS: ["Duration", "MaxConcurrent"],
}

# Fields a pattern-match rule may target
PATTERN_FIELDS: dict[Entity, list[str]] = {
    Entity.CLIENTS: ["ClientID", "ClientName", "GroupTag", "AttributesJSON"],
    Entity.WORKERS: ["WorkerID", "WorkerName", "Skills", "WorkerGroup"],
    Entity.TASKS: ["TaskID", "TaskName", "Category", "RequiredSkills"],
}


def as_entity(value: "Entity | str") -> Entity:
    """Coerce *value* to a table entity or raise UnknownEntityError."""
    try:
        entity = Entity(value)
    except ValueError:
        entity = None
    if entity is None or entity not in TABLE_ENTITIES:
        raise UnknownEntityError(
            f"Unknown entity {value!r}",
            source="schema",
            suggested_action="Use one of: clients, workers, tasks",
        )
    return entity
