"""
Fleet ledger - in-memory operations ledger for a small trucking dispatch business.

Tracks trucks, drivers and carriers, keeps each truck's schedule free of
conflicts and hours-of-service violations, bills carriers a dispatch fee per
load, and lets carriers accept broker-posted loads.
"""

from fleetledger.data.store import EntityNotFoundError
from fleetledger.ledger import FleetLedger

__version__ = "0.1.0"

__all__ = ["EntityNotFoundError", "FleetLedger", "__version__"]
