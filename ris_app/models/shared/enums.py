from enum import Enum

# Enums
class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"

class TransactionType(str, Enum):
    IN = "in"
    OUT = "out"

class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class BudgetSource(str, Enum):
    MOOE = "MOOE"   # Maintenance and Other Operating Expenses
    SSP = "SSP"     # Special Skills Program
