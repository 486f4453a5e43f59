"""
unifier - turn a project directory into one context-rich document for LLMs.

    from unifier import ProcessorSettings, ProjectProcessor, Session

    session = Session.from_path("path/to/project")
    result = ProjectProcessor().process(session, ProcessorSettings(output_format="xml"))
    print(result.output)
"""

__version__ = "1.0.0"

from unifier.errors import (  # noqa: E402
    ProcessingError,
    RenderError,
    RunCancelled,
    SelectionCancelled,
    UnifierError,
    UnsupportedEnvironmentError,
)
from unifier.models import (  # noqa: E402
    BinaryFile,
    CategorizedResult,
    LargeFile,
    ProcessorSettings,
    ProcessorStatus,
    RunResult,
    TextFile,
)
from unifier.patterns import is_ignored  # noqa: E402
from unifier.pipeline import ProjectProcessor, Session  # noqa: E402

__all__ = [
    "BinaryFile",
    "CategorizedResult",
    "LargeFile",
    "ProcessingError",
    "ProcessorSettings",
    "ProcessorStatus",
    "ProjectProcessor",
    "RenderError",
    "RunCancelled",
    "RunResult",
    "SelectionCancelled",
    "Session",
    "TextFile",
    "UnifierError",
    "UnsupportedEnvironmentError",
    "is_ignored",
]
