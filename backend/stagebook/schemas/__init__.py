from .user import UserBase, UserCreate, UserResponse, Token, TokenData
from .booking import BookingBase, BookingCreate, BookingStatusUpdate, BookingResponse
from .rider import (
    RiderTemplateCreate,
    RiderTemplateUpdate,
    RiderTemplateRead,
    RiderShareRequest,
    AcknowledgeRequest,
    ProposalCreate,
    ProposalResponse,
    FinalizeRequest,
    RiderModificationRead,
    RiderAcknowledgmentRead,
)
from .contract import (
    ContractCreate,
    ContractSignRequest,
    ContractRejectRequest,
    ContractRead,
    ContractActions,
    ContractComparison,
    ContractEventRead,
)
from .notification import NotificationResponse
