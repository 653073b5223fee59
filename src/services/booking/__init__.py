"""RedSalud appointment booking package.

Components, leaves first: text matcher, element locator, availability
extractor, step executor, session driver, entry points and the interactive
orchestrator with its conversation store.
"""

from .booking_agent import confirm_booking, start_booking
from .conversation_store import ConversationState, ConversationStore
from .interactive_orchestrator import InteractiveOrchestrator, TurnResult
from .session_driver import SessionDriver
from .step_executor import StepExecutor, run_step
from .text_matcher import matches, normalize

__all__ = [
    # Entry points
    "start_booking",
    "confirm_booking",
    # Components
    "SessionDriver",
    "StepExecutor",
    "run_step",
    "InteractiveOrchestrator",
    "TurnResult",
    "ConversationStore",
    "ConversationState",
    # Matching
    "normalize",
    "matches",
]
