"""External integrations."""
from .acquirer import AcquirerResponse, SimulatedAcquirer

__all__ = ["AcquirerResponse", "SimulatedAcquirer"]
