from table_assistant.conversation.dialogue import DialogueManager
from table_assistant.conversation.intents import Classifier, KeywordClassifier, has_permission
from table_assistant.conversation.session_store import InMemorySessionStore, SessionStore
from table_assistant.conversation.state_machine import (
    DialogueStateMachine,
    DialogueTrigger,
    InvalidTransitionError,
)

__all__ = [
    "DialogueManager",
    "DialogueStateMachine",
    "DialogueTrigger",
    "InvalidTransitionError",
    "Classifier",
    "KeywordClassifier",
    "has_permission",
    "SessionStore",
    "InMemorySessionStore",
]
