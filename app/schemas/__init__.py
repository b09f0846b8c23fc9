"""
Pydantic schemas for API request/response models.
"""

from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ProfileUpdate,
    RefreshTokenRequest,
    Token,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.schemas.common import MessageResponse, PaginationMeta, SortOrder
from app.schemas.contractor import (
    ContractorCreate,
    ContractorListResponse,
    ContractorResponse,
    ContractorUpdate,
)
from app.schemas.cost import CostCreate, CostListResponse, CostResponse, CostSummary, CostUpdate
from app.schemas.driver import (
    DriverCreate,
    DriverDetailResponse,
    DriverListResponse,
    DriverResponse,
    DriverUpdate,
    ExpiryWarning,
)
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceDetailResponse,
    InvoiceItemCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceUpdate,
)
from app.schemas.order import (
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentUpdate,
    OrderCreate,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    WaypointCreate,
)
from app.schemas.vehicle import (
    TrailerCreate,
    TrailerListResponse,
    TrailerResponse,
    TrailerUpdate,
    VehicleCreate,
    VehicleListResponse,
    VehicleResponse,
    VehicleUpdate,
)

__all__ = [
    # Common
    "PaginationMeta",
    "MessageResponse",
    "SortOrder",
    # Auth
    "Token",
    "RefreshTokenRequest",
    "LoginRequest",
    "LoginResponse",
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "UserResponse",
    "UserListResponse",
    # Fleet
    "DriverCreate",
    "DriverUpdate",
    "DriverResponse",
    "DriverDetailResponse",
    "DriverListResponse",
    "ExpiryWarning",
    "VehicleCreate",
    "VehicleUpdate",
    "VehicleResponse",
    "VehicleListResponse",
    "TrailerCreate",
    "TrailerUpdate",
    "TrailerResponse",
    "TrailerListResponse",
    # Contractors
    "ContractorCreate",
    "ContractorUpdate",
    "ContractorResponse",
    "ContractorListResponse",
    # Orders
    "WaypointCreate",
    "OrderCreate",
    "OrderUpdate",
    "OrderStatusUpdate",
    "OrderResponse",
    "OrderDetailResponse",
    "OrderListResponse",
    "AssignmentCreate",
    "AssignmentUpdate",
    "AssignmentResponse",
    "AssignmentListResponse",
    # Finance
    "InvoiceItemCreate",
    "InvoiceCreate",
    "InvoiceUpdate",
    "InvoiceResponse",
    "InvoiceDetailResponse",
    "InvoiceListResponse",
    "CostCreate",
    "CostUpdate",
    "CostResponse",
    "CostSummary",
    "CostListResponse",
]
