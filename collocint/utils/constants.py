from typing import TypeAlias


_Tolerance: TypeAlias = float

# Tolerance hierarchy
COEFFICIENT_PRECISION: _Tolerance = 1e-12  # Sums of continuity and quadrature coefficients
NODE_COINCIDENCE_TOLERANCE: _Tolerance = 1e-14  # Evaluation point treated as a basis node

# Collocation configuration defaults
DEFAULT_INTERPOLATION_ORDER: int = 3
DEFAULT_COLLOCATION_SCHEME: str = "radau"
SUPPORTED_COLLOCATION_SCHEMES: tuple[str, ...] = ("radau", "legendre")

# Persistence
SERIALIZATION_FORMAT: str = "collocint.collocation"
SERIALIZATION_VERSION: int = 1
SUPPORTED_SERIALIZATION_VERSIONS: tuple[int, ...] = (1,)

# Coefficient memoization
DEFAULT_LRU_CACHE_SIZE: int = 64
