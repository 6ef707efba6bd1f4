"""Service layer for ExamGate."""
from .gate import GateDecision, GateState, check_gate, evaluate_gate
from .lifecycle import SessionLifecycle
from .reporting import list_candidates, list_results
from .scorer import WritingScorer, writing_checks

__all__ = [
	"GateDecision", "GateState", "check_gate", "evaluate_gate",
	"SessionLifecycle", "list_candidates", "list_results", "WritingScorer", "writing_checks"
]
