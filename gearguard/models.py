from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum
from datetime import datetime, timezone

# Enums
class UserRole(str, Enum):
    hr = "Hr"
    employee = "Employee"

class AssetType(str, Enum):
    returnable = "Returnable"
    non_returnable = "Non-returnable"

class RequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class AssignmentStatus(str, Enum):
    assigned = "assigned"
    returned = "returned"

class AffiliationStatus(str, Enum):
    active = "active"
    removed = "removed"

class PaymentStatus(str, Enum):
    completed = "completed"

# Records (one per table; built from gateway dicts)
class Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

class User(Record):
    id: Optional[int] = None
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: UserRole
    package_limit: Optional[int] = None  # Hr only
    current_employees: Optional[int] = None  # Hr only
    subscription: Optional[str] = None  # Hr only
    status: Optional[str] = None  # Employee only
    company_name: Optional[str] = None
    company_logo: Optional[str] = None
    position: Optional[str] = None
    dob: Optional[str] = None
    created_at: str

class Asset(Record):
    id: int
    hr_email: str
    product_name: str
    product_image: Optional[str] = None
    product_type: AssetType
    product_quantity: int
    available_quantity: int
    company_name: Optional[str] = None
    date_added: str

class AssetRequest(Record):
    id: int
    asset_id: int
    asset_name: Optional[str] = None
    asset_type: Optional[str] = None
    asset_image: Optional[str] = None
    requester_email: str
    requester_name: Optional[str] = None
    hr_email: str
    company_name: Optional[str] = None
    note: Optional[str] = None
    request_status: RequestStatus
    request_date: str
    approval_date: Optional[str] = None
    processed_by: Optional[str] = None

class AssignedAsset(Record):
    id: int
    asset_id: int
    asset_name: Optional[str] = None
    asset_image: Optional[str] = None
    asset_type: Optional[str] = None
    employee_email: str
    employee_name: Optional[str] = None
    hr_email: str
    company_name: Optional[str] = None
    assignment_date: str
    request_date: Optional[str] = None
    return_date: Optional[str] = None
    status: AssignmentStatus

class Package(Record):
    id: Optional[int] = None
    name: str
    employee_limit: int
    price: float
    features: List[str] = Field(default_factory=list)

class Payment(Record):
    id: int
    hr_email: str
    package_name: str
    employee_limit: int
    amount: float
    transaction_id: Optional[str] = None
    payment_date: str
    status: PaymentStatus


def now_iso() -> str:
    """UTC timestamp used for every record stamp (sorts lexically)."""
    return datetime.now(timezone.utc).isoformat()
