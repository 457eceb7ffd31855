"""eisen: compile recursive structure scripts into placed, coloured objects.

    import eisen

    structure = eisen.compile("R  rule R maxdepth 3 { box {x 1} R }", seed=1)
    for event in structure.build():
        print(event.label, event.position)
"""

from .color import RGBA, Color, ColorPool
from .criteria import Criteria
from .engine import BuildEvent, BuildStatus, Flow, Grammar, Structure, compile
from .errors import BuildError, ConfigError, EisenError, ScriptError
from .matrix import AffineMatrix
from .random_mt import RandomGenerator

__version__ = "0.3.0"

__all__ = [
    "RGBA",
    "AffineMatrix",
    "BuildError",
    "BuildEvent",
    "BuildStatus",
    "Color",
    "ColorPool",
    "ConfigError",
    "Criteria",
    "EisenError",
    "Flow",
    "Grammar",
    "RandomGenerator",
    "ScriptError",
    "Structure",
    "compile",
]
