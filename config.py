"""
Gaussian Generative Classifiers - Global Configuration

This module contains all configuration constants for the classification engine.
"""

from dataclasses import dataclass
from typing import Optional

# =============================================================================
# DECISION RULE
# =============================================================================
DEFAULT_THRESHOLD = 0.5  # Binary: predict positive class when P(pos|x) > threshold

# =============================================================================
# NUMERICAL TOLERANCES
# =============================================================================
PRIOR_TOLERANCE = 1e-9  # Priors must sum to 1 within this tolerance
PROBABILITY_TOLERANCE = 1e-9  # Posterior rows must sum to 1 within this tolerance
SINGULAR_RTOL = 1e-10  # Cholesky pivot below this fraction of its variance counts as singular

# =============================================================================
# COVARIANCE ESTIMATION
# =============================================================================
VAR_SMOOTHING = 0.0  # Ridge added to every covariance (0 = report degenerate data)
ALLOW_PSEUDO_INVERSE = False  # Fall back to eigendecomposition for singular covariance
POOLING = "weighted"  # LDA shared covariance: "weighted" (pooled within-class) or "average"
POOLING_METHODS = ("weighted", "average")

# =============================================================================
# BATCH PREDICTION
# =============================================================================
BATCH_SIZE = None  # Rows per chunk (None = whole batch at once)
N_JOBS = 1  # Worker threads for chunked prediction

# =============================================================================
# LOGGING
# =============================================================================
LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# =============================================================================
# DATACLASSES FOR CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """Estimation and prediction configuration."""
    threshold: float = DEFAULT_THRESHOLD
    prior_tolerance: float = PRIOR_TOLERANCE
    probability_tolerance: float = PROBABILITY_TOLERANCE
    var_smoothing: float = VAR_SMOOTHING
    allow_pseudo_inverse: bool = ALLOW_PSEUDO_INVERSE
    singular_rtol: float = SINGULAR_RTOL
    pooling: str = POOLING
    batch_size: Optional[int] = BATCH_SIZE
    n_jobs: int = N_JOBS

    def validate(self) -> 'EngineConfig':
        """Check value ranges. Returns self so it can be chained."""
        if not 0.0 < self.threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {self.threshold}")
        if self.prior_tolerance < 0 or self.probability_tolerance < 0:
            raise ValueError("tolerances must be non-negative")
        if self.var_smoothing < 0:
            raise ValueError(f"var_smoothing must be non-negative, got {self.var_smoothing}")
        if self.singular_rtol <= 0:
            raise ValueError("singular_rtol must be positive")
        if self.pooling not in POOLING_METHODS:
            raise ValueError(f"pooling must be one of {POOLING_METHODS}, got '{self.pooling}'")
        if self.batch_size is not None and self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}")
        return self


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""
    level: str = LOG_LEVEL
    fmt: str = LOG_FORMAT


def get_default_config():
    """Get default configuration objects."""
    return {
        'engine': EngineConfig(),
        'logging': LoggingConfig(),
    }
