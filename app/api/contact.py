"""Contact API: forward a customer inquiry to a builder by email."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core.email_sender import Delivery, EmailSender, get_email_sender
from app.schemas.contact import InquiryRequest

router = APIRouter()


@router.post("/send")
def send_inquiry(body: InquiryRequest, email_sender: EmailSender = Depends(get_email_sender)):
    customer = body.customer_details
    delivery = email_sender.send_inquiry_email(
        body.to,
        body.subject,
        body.message,
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
    )
    if delivery is Delivery.FAILED:
        return JSONResponse(status_code=500, content={"success": False, "message": "Failed to send inquiry"})
    if delivery is Delivery.NOT_CONFIGURED:
        return {"success": True, "message": "Inquiry sent (Mock)"}
    return {"success": True, "message": "Inquiry sent"}
