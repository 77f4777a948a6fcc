"""Response models shared across routers. JSON keys are camelCase."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MessageResponse(CamelModel):
    message: str


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: str
    barbershop_id: int


class BarbershopResponse(CamelModel):
    id: int
    name: str
    slug: str
    logo_url: str | None = None
    plan_id: int | None = None
    max_barbers: int
    active: bool
    created_at: datetime
    updated_at: datetime


class BarberResponse(CamelModel):
    id: int
    name: str
    working_hours: list[dict]
    unavailable_dates: list[str]
    barbershop_id: int
    active: bool
    created_at: datetime
    updated_at: datetime


class PublicBarberResponse(CamelModel):
    id: int
    name: str


class ServiceResponse(CamelModel):
    id: int
    name: str
    duration: int
    price: float
    barbershop_id: int
    active: bool
    created_at: datetime
    updated_at: datetime


class CustomerResponse(CamelModel):
    id: int
    name: str
    phone: str
    no_show_count: int
    blocked: bool
    barbershop_id: int
    created_at: datetime
    updated_at: datetime


class BarberSummary(CamelModel):
    id: int
    name: str


class ServiceSummary(CamelModel):
    id: int
    name: str
    duration: int
    price: float


class CustomerSummary(CamelModel):
    id: int
    name: str
    phone: str


class AppointmentResponse(CamelModel):
    id: int
    barbershop_id: int
    barber_id: int
    service_id: int
    customer_id: int
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime
    updated_at: datetime
    barber: BarberSummary | None = None
    service: ServiceSummary | None = None
    customer: CustomerSummary | None = None


class PlanResponse(CamelModel):
    id: int
    name: str
    price_monthly: float
    max_barbers: int
    features: list[str]


class SubscriptionResponse(CamelModel):
    id: int
    status: str
    trial_ends_at: datetime | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    plan: PlanResponse


class PaymentResponse(CamelModel):
    id: int
    amount: float
    currency: str
    status: str
    payment_method: str
    paid_at: datetime | None = None
    created_at: datetime
