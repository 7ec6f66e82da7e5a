"""
Invoice Ninja data models.
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .retry import DEFAULT_REQUESTS_PER_SECOND, RetryConfig


DEFAULT_BASE_URL = "https://invoicing.co"
DEFAULT_TIMEOUT = 30.0

T = TypeVar("T")


class InvoiceNinjaConfig(BaseModel):
    """Invoice Ninja client configuration."""
    api_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    webhook_secret: Optional[str] = None
    requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @classmethod
    def from_settings(cls, settings) -> "InvoiceNinjaConfig":
        """Build a configuration from client settings."""
        return cls(
            api_token=settings.INVOICE_NINJA_API_TOKEN,
            base_url=settings.INVOICE_NINJA_BASE_URL,
            timeout=settings.INVOICE_NINJA_TIMEOUT,
            webhook_secret=settings.INVOICE_NINJA_WEBHOOK_SECRET or None,
            requests_per_second=settings.INVOICE_NINJA_RATE_LIMIT_PER_SECOND,
            retry=RetryConfig.from_settings(settings),
        )


class EntityModel(BaseModel):
    """Base for API entities. Unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore")


class LineItem(EntityModel):
    """Line item on an invoice or credit."""
    quantity: Optional[float] = None
    cost: Optional[float] = None
    product_key: Optional[str] = None
    notes: Optional[str] = None
    discount: Optional[float] = None
    is_amount_discount: Optional[bool] = None
    tax_name1: Optional[str] = None
    tax_rate1: Optional[float] = None
    tax_name2: Optional[str] = None
    tax_rate2: Optional[float] = None
    tax_name3: Optional[str] = None
    tax_rate3: Optional[float] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None
    type_id: Optional[str] = None


class Invoice(EntityModel):
    """Invoice information."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    client_id: Optional[str] = None
    status_id: Optional[str] = None
    number: Optional[str] = None
    po_number: Optional[str] = None
    terms: Optional[str] = None
    public_notes: Optional[str] = None
    private_notes: Optional[str] = None
    footer: Optional[str] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None
    tax_name1: Optional[str] = None
    tax_name2: Optional[str] = None
    tax_name3: Optional[str] = None
    tax_rate1: Optional[float] = None
    tax_rate2: Optional[float] = None
    tax_rate3: Optional[float] = None
    total_taxes: Optional[float] = None
    amount: Optional[float] = None
    balance: Optional[float] = None
    paid_to_date: Optional[float] = None
    discount: Optional[float] = None
    partial_due_date: Optional[str] = None
    due_date: Optional[str] = None
    date: Optional[str] = None
    line_items: List[LineItem] = []
    is_deleted: Optional[bool] = None
    updated_at: Optional[int] = None
    archived_at: Optional[int] = None
    created_at: Optional[int] = None


class PaymentInvoice(EntityModel):
    """Invoice applied to a payment."""
    invoice_id: Optional[str] = None
    amount: Optional[float] = None


class PaymentCredit(EntityModel):
    """Credit applied to a payment."""
    credit_id: Optional[str] = None
    amount: Optional[float] = None


class Paymentable(EntityModel):
    """Invoice or credit attached to a payment."""
    id: Optional[str] = None
    invoice_id: Optional[str] = None
    credit_id: Optional[str] = None
    refunded: Optional[float] = None
    amount: Optional[float] = None
    updated_at: Optional[int] = None
    created_at: Optional[int] = None


class Payment(EntityModel):
    """Payment information."""
    id: Optional[str] = None
    client_id: Optional[str] = None
    invitation_id: Optional[str] = None
    client_contact_id: Optional[str] = None
    user_id: Optional[str] = None
    type_id: Optional[str] = None
    date: Optional[str] = None
    transaction_reference: Optional[str] = None
    assigned_user_id: Optional[str] = None
    private_notes: Optional[str] = None
    is_manual: Optional[bool] = None
    is_deleted: Optional[bool] = None
    amount: Optional[float] = None
    refunded: Optional[float] = None
    updated_at: Optional[int] = None
    archived_at: Optional[int] = None
    company_gateway_id: Optional[str] = None
    number: Optional[str] = None
    category_id: Optional[str] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None
    exchange_currency_id: Optional[str] = None
    exchange_rate: Optional[float] = None
    idempotency_key: Optional[str] = None
    paymentables: List[Paymentable] = []
    invoices: List[PaymentInvoice] = []
    credits: List[PaymentCredit] = []


class ClientContact(EntityModel):
    """Contact person for a client."""
    id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    is_primary: Optional[bool] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None


class Client(EntityModel):
    """Client (customer) information."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    name: Optional[str] = None
    website: Optional[str] = None
    private_notes: Optional[str] = None
    public_notes: Optional[str] = None
    balance: Optional[float] = None
    paid_to_date: Optional[float] = None
    credit_balance: Optional[float] = None
    phone: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country_id: Optional[str] = None
    industry_id: Optional[str] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None
    vat_number: Optional[str] = None
    id_number: Optional[str] = None
    number: Optional[str] = None
    shipping_address1: Optional[str] = None
    shipping_address2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country_id: Optional[str] = None
    is_deleted: Optional[bool] = None
    contacts: List[ClientContact] = []
    updated_at: Optional[int] = None
    archived_at: Optional[int] = None
    created_at: Optional[int] = None

    @property
    def primary_contact(self) -> Optional[ClientContact]:
        """Get the primary contact, falling back to the first one."""
        for contact in self.contacts:
            if contact.is_primary:
                return contact
        return self.contacts[0] if self.contacts else None


class Credit(EntityModel):
    """Credit note information."""
    id: Optional[str] = None
    user_id: Optional[str] = None
    assigned_user_id: Optional[str] = None
    client_id: Optional[str] = None
    status_id: Optional[str] = None
    invoice_id: Optional[str] = None
    number: Optional[str] = None
    po_number: Optional[str] = None
    terms: Optional[str] = None
    public_notes: Optional[str] = None
    private_notes: Optional[str] = None
    footer: Optional[str] = None
    custom_value1: Optional[str] = None
    custom_value2: Optional[str] = None
    custom_value3: Optional[str] = None
    custom_value4: Optional[str] = None
    tax_name1: Optional[str] = None
    tax_name2: Optional[str] = None
    tax_name3: Optional[str] = None
    tax_rate1: Optional[float] = None
    tax_rate2: Optional[float] = None
    tax_rate3: Optional[float] = None
    total_taxes: Optional[float] = None
    amount: Optional[float] = None
    balance: Optional[float] = None
    paid_to_date: Optional[float] = None
    discount: Optional[float] = None
    partial: Optional[float] = None
    is_amount_discount: Optional[bool] = None
    is_deleted: Optional[bool] = None
    uses_inclusive_taxes: Optional[bool] = None
    date: Optional[str] = None
    last_sent_date: Optional[str] = None
    next_send_date: Optional[str] = None
    partial_due_date: Optional[str] = None
    due_date: Optional[str] = None
    line_items: List[LineItem] = []
    updated_at: Optional[int] = None
    archived_at: Optional[int] = None
    created_at: Optional[int] = None


class Pagination(BaseModel):
    """Pagination details."""
    total: int = 0
    count: int = 0
    per_page: int = 0
    current_page: int = 0
    total_pages: int = 0
    links: Any = None  # object or empty list, depending on the endpoint


class Meta(BaseModel):
    """List response metadata."""
    pagination: Pagination = Field(default_factory=Pagination)


class ListResponse(BaseModel, Generic[T]):
    """Response envelope for list endpoints."""
    data: List[T] = []
    meta: Meta = Field(default_factory=Meta)

    @property
    def has_more(self) -> bool:
        """Check whether further pages exist."""
        pagination = self.meta.pagination
        return pagination.current_page < pagination.total_pages