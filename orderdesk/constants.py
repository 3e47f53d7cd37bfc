"""
Status and service-type vocabularies shared by the store models and the core.
"""

# Order statuses: pending → confirmed → in_progress → completed
# cancelled is reachable from pending or confirmed only
PENDING = "pending"
CONFIRMED = "confirmed"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED)

# Orders in these statuses still hold their delivery slot
NON_TERMINAL_STATUSES = (PENDING, CONFIRMED, IN_PROGRESS)
TERMINAL_STATUSES = (COMPLETED, CANCELLED)

# Service types
WATER = "water"
SEPTIC = "septic"
SERVICE_TYPES = (WATER, SEPTIC)

# Driver statuses: pending (self-registered) → active ⇄ blocked
DRIVER_PENDING = "pending"
DRIVER_ACTIVE = "active"
DRIVER_BLOCKED = "blocked"
DRIVER_STATUSES = (DRIVER_PENDING, DRIVER_ACTIVE, DRIVER_BLOCKED)

# Drivers may register for a single service or both
DRIVER_SERVICE_TYPES = (WATER, SEPTIC, "both")

# Acting roles
ROLE_CUSTOMER = "customer"
ROLE_DRIVER = "driver"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CUSTOMER, ROLE_DRIVER, ROLE_ADMIN)
