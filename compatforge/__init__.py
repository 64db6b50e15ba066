"""compatforge: compatibility-matrix builds for one project.

Checks out a source tree once, fans it out to one build per dependency
version, collects each build's dependency tree and publishes a static
HTML compatibility matrix.
"""

__version__ = "0.1.0"
__description__ = "Build one project against a matrix of dependency versions"

from compatforge.core.pipeline import MatrixPipeline
from compatforge.cli.app import app as cli

__all__ = ["MatrixPipeline", "cli", "__version__"]
