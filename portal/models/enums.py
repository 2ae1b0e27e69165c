import enum

class Role(str, enum.Enum):
    user = "user"
    manager = "manager"
    admin = "admin"

class TaskStatus(str, enum.Enum):
    incomplete = "incomplete"
    complete = "complete"

class ReviewStatus(str, enum.Enum):
    pending_review = "pending_review"
    approved = "approved"
    reverted = "reverted"

class ReviewDecision(str, enum.Enum):
    approved = "approved"
    reverted = "reverted"

class QueryStatus(str, enum.Enum):
    pending = "pending"
    resolved = "resolved"
    rejected = "rejected"

class QueryDecision(str, enum.Enum):
    resolved = "resolved"
    rejected = "rejected"
