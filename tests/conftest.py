"""Root test configuration.

Pins JAX to the CPU backend *before* it is imported anywhere so test
runs are identical on machines with and without accelerators.
"""

import os

os.environ.setdefault("JAX_PLATFORMS", "cpu")
