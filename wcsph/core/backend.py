"""
Backend selection and dispatch system for SPH.

Supports two backends:
1. CPU (NumPy) - vectorized scatter-add over the interaction list
2. Numba - JIT-compiled serial loops over the interaction list

The backend can be selected globally or per-function call.
"""

import enum
import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Dict, Callable

import numba

logger = logging.getLogger(__name__)


class Backend(enum.Enum):
    """Available computation backends."""
    CPU = "cpu"      # NumPy
    NUMBA = "numba"  # Numba JIT


@dataclass
class BackendInfo:
    """Information about a backend."""
    backend: Backend
    device_name: str = "CPU"


class BackendManager:
    """Manages backend selection and dispatching."""

    def __init__(self):
        self._current_backend = Backend.CPU
        self._backends = {
            Backend.CPU: BackendInfo(Backend.CPU, "CPU (NumPy)"),
            Backend.NUMBA: BackendInfo(Backend.NUMBA, f"CPU (Numba {numba.__version__})"),
        }
        self._implementations: Dict[str, Dict[Backend, Callable]] = {}

    @property
    def current_backend(self) -> Backend:
        """Get current backend."""
        return self._current_backend

    @property
    def backends(self) -> Dict[Backend, BackendInfo]:
        """Registered backends and their descriptions."""
        return dict(self._backends)

    def set_backend(self, backend: Backend):
        """Set the current backend."""
        self._current_backend = backend
        logger.debug("Backend set to %s", backend.value)

    def auto_select_backend(self, n_interactions: int) -> Backend:
        """Pick the best backend for a problem size.

        Numba pays a one-off compile cost, so small lists stay on NumPy.
        """
        if n_interactions > 20000:
            return Backend.NUMBA
        return Backend.CPU

    def register_implementation(self, function_name: str, backend: Backend,
                                implementation: Callable):
        """Register a backend-specific implementation."""
        self._implementations.setdefault(function_name, {})[backend] = implementation

    def get_implementation(self, function_name: str,
                           backend: Optional[Backend] = None) -> Callable:
        """Get implementation for a function.

        Raises:
            ValueError: If no implementation found
        """
        if backend is None:
            backend = self._current_backend

        if function_name not in self._implementations:
            raise ValueError(f"No implementations registered for {function_name}")

        implementations = self._implementations[function_name]
        if backend in implementations:
            return implementations[backend]

        # Fall back to CPU
        if Backend.CPU in implementations:
            warnings.warn(f"No {backend.value} implementation for {function_name}, using CPU")
            return implementations[Backend.CPU]

        raise ValueError(f"No implementation found for {function_name}")

    def dispatch(self, function_name: str, *args, backend: Optional[Backend] = None, **kwargs):
        """Dispatch a function call to the appropriate backend."""
        impl = self.get_implementation(function_name, backend)
        return impl(*args, **kwargs)

    def print_info(self):
        """Print information about registered backends."""
        print("\nSPH Backend Information")
        print("=" * 60)
        for backend, info in self._backends.items():
            print(f"  {backend.value:6s}: {info.device_name}")
        print(f"\nCurrent backend: {self._current_backend.value}")
        print("=" * 60)


# Global backend manager instance
_backend_manager = BackendManager()


def _to_backend(backend) -> Backend:
    if isinstance(backend, Backend):
        return backend
    try:
        return Backend(str(backend).lower())
    except ValueError:
        choices = ", ".join(b.value for b in Backend)
        raise ValueError(f"Invalid backend: {backend}. Choose from: {choices}") from None


# Public API
def set_backend(backend):
    """Set the global backend ('cpu' or 'numba').

    Raises:
        ValueError: unknown backend name
    """
    _backend_manager.set_backend(_to_backend(backend))


def get_backend() -> str:
    """Get current backend name."""
    return _backend_manager.current_backend.value


def list_backends() -> Dict[str, str]:
    """Get backend names mapped to their device descriptions."""
    return {b.value: info.device_name for b, info in _backend_manager.backends.items()}


def auto_select_backend(n_interactions: int) -> str:
    """Auto-select and activate the best backend for an interaction count."""
    backend = _backend_manager.auto_select_backend(n_interactions)
    _backend_manager.set_backend(backend)
    return backend.value


def print_backend_info():
    """Print backend information."""
    _backend_manager.print_info()


# Decorator for backend-specific implementations
def backend_function(function_name: str):
    """Decorator to register backend-specific implementations.

    Usage:
        @backend_function("density_rate")
        @for_backend(Backend.NUMBA)
        def _density_rate_numba(...):
            ...
    """
    def decorator(func):
        if hasattr(func, '_backend'):
            _backend_manager.register_implementation(function_name, func._backend, func)
        return func
    return decorator


def for_backend(backend: Backend):
    """Helper decorator to specify backend."""
    def decorator(func):
        func._backend = backend
        return func
    return decorator


def dispatch(function_name: str, *args, backend: Optional[str] = None, **kwargs):
    """Dispatch function to the current or requested backend."""
    backend_enum = _to_backend(backend) if backend else None
    return _backend_manager.dispatch(function_name, *args, backend=backend_enum, **kwargs)
