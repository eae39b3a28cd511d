import enum


class UserRole(str, enum.Enum):
    CLIENT = "client"
    CONTRACTOR = "contractor"
    ADMIN = "admin"


class ProjectType(str, enum.Enum):
    MEDICAL_WEBSITE = "medical-website"
    EHR_SYSTEM = "ehr-system"
    TELEMEDICINE = "telemedicine"
    MEDICAL_APP = "medical-app"
    OTHER = "other"


class ContractStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DocumentSlot(str, enum.Enum):
    FRONT = "front"
    BACK = "back"


class DocumentType(str, enum.Enum):
    DL_FRONT = "dl-front"
    DL_BACK = "dl-back"
    CONTRACT = "contract"
    PROPOSAL = "proposal"
    INVOICE = "invoice"
    OTHER = "other"

    @property
    def slot(self) -> DocumentSlot | None:
        """Single-slot types map to a slot; everything else is appended."""
        return _SLOTS.get(self)

    @property
    def is_single_slot(self) -> bool:
        return self.slot is not None


_SLOTS = {
    DocumentType.DL_FRONT: DocumentSlot.FRONT,
    DocumentType.DL_BACK: DocumentSlot.BACK,
}

SINGLE_SLOT_TYPES = tuple(t.value for t in _SLOTS)


class ImageOrientation(str, enum.Enum):
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    SQUARE = "square"
