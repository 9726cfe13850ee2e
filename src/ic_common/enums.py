"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class TransactionKind(str, Enum):
    DEDUCT = "DEDUCT"
    ADD = "ADD"
    REFUND = "REFUND"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"


class OperationKind(str, Enum):
    """Metered operations. Analyses score an idea; documents are generated from one."""
    # Analyses
    STARTUP_ANALYSIS = "startup_analysis"
    HACKATHON_ANALYSIS = "hackathon_analysis"
    FRANKENSTEIN_IDEA = "frankenstein_idea"
    # Generated documents
    PRD = "prd"
    TECHNICAL_DESIGN = "technical_design"
    ARCHITECTURE = "architecture"
    ROADMAP = "roadmap"

    @property
    def is_analysis(self) -> bool:
        return self in (
            OperationKind.STARTUP_ANALYSIS,
            OperationKind.HACKATHON_ANALYSIS,
            OperationKind.FRANKENSTEIN_IDEA,
        )

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[OperationKind, str] = {
    OperationKind.STARTUP_ANALYSIS: "Startup Analysis",
    OperationKind.HACKATHON_ANALYSIS: "Hackathon Analysis",
    OperationKind.FRANKENSTEIN_IDEA: "Frankenstein Idea",
    OperationKind.PRD: "Product Requirements Document",
    OperationKind.TECHNICAL_DESIGN: "Technical Design",
    OperationKind.ARCHITECTURE: "Architecture",
    OperationKind.ROADMAP: "Roadmap",
}


class UserTier(str, Enum):
    FREE = "free"
    PAID = "paid"
    ADMIN = "admin"


class SagaState(str, Enum):
    START = "START"
    COST_CHECKED = "COST_CHECKED"
    DEBITED = "DEBITED"
    GENERATED = "GENERATED"
    PERSISTED = "PERSISTED"
    SUCCESS = "SUCCESS"
    REFUNDED = "REFUNDED"
    FAILURE = "FAILURE"
