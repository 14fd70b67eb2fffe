"""Receipt-to-pantry reconciliation for shopping trips."""

from .budget import BudgetReconciler
from .config import (
    DatabaseConfig,
    MatchingConfig,
    OrchestratorConfig,
    PantryTripConfig,
    ReceiptConfig,
    ReportConfig,
    load_config,
)
from .errors import (
    AlreadyCompletedError,
    AlreadyLinkedError,
    InvalidStateError,
    NotFoundError,
    PantryTripError,
    RemoteCallFailure,
    ValidationError,
)
from .matching import MatchClassifier, MatchDecision, normalize_name, similarity_score
from .models import (
    FailedCall,
    FuzzyMatch,
    ListStatus,
    NewItem,
    PantryItem,
    Receipt,
    ReceiptItem,
    ReconciliationSummary,
    RestockedItem,
    RestockResult,
    ShoppingList,
    ShoppingListItem,
    StockLevel,
)
from .orchestrator import (
    DecisionEntry,
    DecisionOutcome,
    DecisionStatus,
    DecisionType,
    TripCompletionOrchestrator,
    TripOutcome,
    TripState,
)
from .restock import RestockEngine
from .store import PantryStore, create_store
from .store.memory import InMemoryStore

__all__ = [
    "RestockEngine",
    "BudgetReconciler",
    "TripCompletionOrchestrator",
    "TripState",
    "TripOutcome",
    "DecisionEntry",
    "DecisionOutcome",
    "DecisionStatus",
    "DecisionType",
    "MatchClassifier",
    "MatchDecision",
    "normalize_name",
    "similarity_score",
    "PantryStore",
    "InMemoryStore",
    "create_store",
    "Receipt",
    "ReceiptItem",
    "PantryItem",
    "ShoppingList",
    "ShoppingListItem",
    "StockLevel",
    "ListStatus",
    "RestockResult",
    "RestockedItem",
    "FuzzyMatch",
    "NewItem",
    "FailedCall",
    "ReconciliationSummary",
    "PantryTripError",
    "ValidationError",
    "NotFoundError",
    "AlreadyCompletedError",
    "AlreadyLinkedError",
    "InvalidStateError",
    "RemoteCallFailure",
    "PantryTripConfig",
    "MatchingConfig",
    "ReceiptConfig",
    "OrchestratorConfig",
    "DatabaseConfig",
    "ReportConfig",
    "load_config",
]
