from fastapi import APIRouter, Depends

from mailgate.core.rate_limit import route_rate_limit
from mailgate.schemas.contact import ContactRequest, ContactResponse
from mailgate.services.contact_service import submit_contact

router = APIRouter(tags=["Contact"])


@router.post(
    "/contact",
    response_model=ContactResponse,
    dependencies=[Depends(route_rate_limit("contact_limiter"))],
)
async def contact(payload: ContactRequest) -> ContactResponse:
    """Accept a contact form submission.

    Guarded by the global limiter and by a stricter per-client contact
    limiter.

    Raises:
        ValidationAppError: 400 when the honeypot is filled or a required
            field is blank.
        RateLimitedAppError: 429 when the contact limit is exceeded.
    """
    submit_contact(payload)
    return ContactResponse(ok=True)
