from process_optimizer.models.base import Base
from process_optimizer.models.diagram import Diagram
from process_optimizer.models.diagram_version import DiagramVersion

__all__ = [
    "Base",
    "Diagram",
    "DiagramVersion",
]
