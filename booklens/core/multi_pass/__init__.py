"""
Multi-pass recognition: pass planning, scoring and orchestration.
"""

from .orchestrator import MultiPassOrchestrator, OrchestratorState, recognize_multi_pass
from .plan         import PassSpec, build_pass_plan
from .scoring      import ScoredResult, score_result, select_best

__all__ = [
    'MultiPassOrchestrator',
    'OrchestratorState',
    'PassSpec',
    'ScoredResult',
    'build_pass_plan',
    'recognize_multi_pass',
    'score_result',
    'select_best'
]
