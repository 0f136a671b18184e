"""Invoice template descriptions and a per-shop template registry."""

import logging
import re
import threading
import uuid

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"
FONT_NAME = r"^[A-Za-z0-9 ,\-']{1,64}$"
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


def is_valid_gstin(value: str) -> bool:
    return bool(GSTIN_PATTERN.match(value))


class Margins(BaseModel):
    top: float = Field(20, ge=0, le=100)
    right: float = Field(20, ge=0, le=100)
    bottom: float = Field(20, ge=0, le=100)
    left: float = Field(20, ge=0, le=100)


class Fonts(BaseModel):
    primary: str = Field("Helvetica", pattern=FONT_NAME)
    secondary: str = Field("Helvetica", pattern=FONT_NAME)
    size: float = Field(10, ge=6, le=32)


class Colors(BaseModel):
    primary: str = Field("#1a73e8", pattern=HEX_COLOR)
    secondary: str = Field("#5f6368", pattern=HEX_COLOR)
    text: str = Field("#202124", pattern=HEX_COLOR)


class Logo(BaseModel):
    url: str = Field(..., max_length=2048)
    width: float = Field(120, gt=0, le=600)
    height: float = Field(40, gt=0, le=400)


class BankDetails(BaseModel):
    account_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""
    bank_name: str = ""


class BusinessInfo(BaseModel):
    company_name: str = ""
    gstin: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    phone: str = ""
    email: str = ""
    website: str | None = None
    bank_details: BankDetails | None = None

    @field_validator("gstin")
    @classmethod
    def check_gstin(cls, value: str) -> str:
        value = value.strip().upper()
        if value and not is_valid_gstin(value):
            raise ValueError("Invalid GSTIN format")
        return value


class TemplateLayout(BaseModel):
    page_size: str = Field("A4", pattern="^(A4|A5|Letter)$")
    orientation: str = Field("portrait", pattern="^(portrait|landscape)$")
    margins: Margins = Field(default_factory=Margins)
    fonts: Fonts = Field(default_factory=Fonts)
    colors: Colors = Field(default_factory=Colors)
    logo: Logo | None = None


class DocumentTemplate(BaseModel):
    """Layout, typography, colours and visibility toggles for invoices."""

    id: str = "default"
    name: str = "Default GST Invoice"
    owner: str | None = None
    layout: TemplateLayout = Field(default_factory=TemplateLayout)
    business: BusinessInfo = Field(default_factory=BusinessInfo)
    show_tax_breakdown: bool = True
    show_classification_codes: bool = True
    show_bank_details: bool = False
    show_logo: bool = True
    max_items_per_page: int = Field(20, ge=1, le=200)


DEFAULT_TEMPLATE = DocumentTemplate()


class TemplateRegistry:
    """Per-owner templates; unknown ids fall back to the default template."""

    def __init__(self, default: DocumentTemplate = DEFAULT_TEMPLATE):
        self._default = default
        self._templates: dict[str, DocumentTemplate] = {}
        self._lock = threading.Lock()

    def register(self, owner: str, template: DocumentTemplate) -> DocumentTemplate:
        template_id = template.id if template.id != "default" else uuid.uuid4().hex
        stored = template.model_copy(update={"owner": owner, "id": template_id})
        with self._lock:
            self._templates[stored.id] = stored
        return stored

    @property
    def default(self) -> DocumentTemplate:
        return self._default

    def find(self, template_id: str, owner: str) -> DocumentTemplate | None:
        """The owner's template with ``template_id``, or None."""
        with self._lock:
            template = self._templates.get(template_id)
        if template is None or template.owner != owner:
            return None
        return template

    def get(self, template_id: str | None, owner: str | None = None) -> DocumentTemplate:
        if not template_id:
            return self._default
        with self._lock:
            template = self._templates.get(template_id)
        if template is None or (owner is not None and template.owner != owner):
            logger.info(f"Template {template_id} not found, using default")
            return self._default
        return template

    def delete(self, template_id: str, owner: str) -> bool:
        with self._lock:
            template = self._templates.get(template_id)
            if template is None or template.owner != owner:
                return False
            del self._templates[template_id]
        return True

    def list(self, owner: str) -> list[DocumentTemplate]:
        with self._lock:
            return [t for t in self._templates.values() if t.owner == owner]

    def delete_owner(self, owner: str) -> int:
        with self._lock:
            doomed = [tid for tid, t in self._templates.items() if t.owner == owner]
            for tid in doomed:
                del self._templates[tid]
        return len(doomed)
