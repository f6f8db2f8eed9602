"""Domain enumerations for workflow definitions.

Values are the wire strings stored in definitions (trigger/action type
tags, condition operators).
"""

from enum import Enum


class _ValuesMixin:
    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for validation messages)."""
        return [member.value for member in cls]


class TriggerType(_ValuesMixin, str, Enum):
    """Domain event kinds a workflow can react to."""

    # Project
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_STATUS_CHANGED = "PROJECT_STATUS_CHANGED"
    PROJECT_MILESTONE_REACHED = "PROJECT_MILESTONE_REACHED"
    PROJECT_DEADLINE_APPROACHING = "PROJECT_DEADLINE_APPROACHING"
    BUDGET_THRESHOLD = "BUDGET_THRESHOLD"

    # Task
    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_OVERDUE = "TASK_OVERDUE"
    TASK_PRIORITY_CHANGED = "TASK_PRIORITY_CHANGED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"

    # Financial
    INVOICE_CREATED = "INVOICE_CREATED"
    INVOICE_SENT = "INVOICE_SENT"
    INVOICE_PAID = "INVOICE_PAID"
    INVOICE_OVERDUE = "INVOICE_OVERDUE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"

    # Client / team
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"
    TEAM_MEMBER_ADDED = "TEAM_MEMBER_ADDED"
    TEAM_MEMBER_REMOVED = "TEAM_MEMBER_REMOVED"

    # Time and custom
    SCHEDULE = "SCHEDULE"
    WEBHOOK = "WEBHOOK"
    MANUAL = "MANUAL"


class ActionType(_ValuesMixin, str, Enum):
    """Built-in action kinds. The registry accepts other tags too."""

    # Messaging
    SEND_EMAIL = "SEND_EMAIL"
    SEND_SLACK = "SEND_SLACK"
    SEND_TEAMS = "SEND_TEAMS"
    SEND_SMS = "SEND_SMS"
    CREATE_NOTIFICATION = "CREATE_NOTIFICATION"

    # Records
    CREATE_TASK = "CREATE_TASK"
    UPDATE_ENTITY = "UPDATE_ENTITY"
    ASSIGN_USER = "ASSIGN_USER"
    CREATE_INVOICE = "CREATE_INVOICE"
    ADD_TASK_COMMENT = "ADD_TASK_COMMENT"

    # Integration and flow
    CALL_WEBHOOK = "CALL_WEBHOOK"
    DELAY = "DELAY"


class ConditionOperator(_ValuesMixin, str, Enum):
    """Leaf comparison operators."""

    # Comparison
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_OR_EQUAL = "GREATER_OR_EQUAL"
    LESS_OR_EQUAL = "LESS_OR_EQUAL"

    # String
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    MATCHES_REGEX = "MATCHES_REGEX"

    # Collection
    IN = "IN"
    NOT_IN = "NOT_IN"

    # Presence / boolean
    EXISTS = "EXISTS"
    IS_NULL = "IS_NULL"
    IS_NOT_NULL = "IS_NOT_NULL"
    IS_TRUE = "IS_TRUE"
    IS_FALSE = "IS_FALSE"

    # Date
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    BETWEEN = "BETWEEN"


class LogicalOperator(_ValuesMixin, str, Enum):
    """Group operators. NOT negates the conjunction of its children."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"
