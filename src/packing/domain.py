"""Domain initialization and configuration.

Packing bounded context: live scanning of multi-customer jobs into customer
boxes, put-aside handling for units that cannot be boxed yet, audited box
corrections (empty, transfer) and independent CheckCount verification
sessions.
"""

import os

from protean.domain import Domain

from packing.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_dir=os.getenv("PACKING_LOG_DIR", "logs"), log_file_prefix="packing")

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
packing = Domain(name="packing")
