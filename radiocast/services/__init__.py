from .fetch_coordinator import FetchCoordinator
from .llm_service import LLMService
from .normalizer import normalize
from .report_service import GenerationResult, ReportService
from .template_composer import TemplateComposer

__all__ = [
    "FetchCoordinator",
    "GenerationResult",
    "LLMService",
    "ReportService",
    "TemplateComposer",
    "normalize",
]
