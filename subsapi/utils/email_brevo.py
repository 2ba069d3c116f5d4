import aiohttp
from typing import Optional
import logging

from subsapi.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when Brevo does not accept a message"""


class BrevoEmailService:
    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or settings.BREVO_API_KEY
        self.base_url = "https://api.brevo.com/v3"
        
        if not self.api_key:
            logger.warning("BREVO_API_KEY not configured - emails will only be logged")
    
    async def send_email(self, to_email: str, subject: str, html: str) -> Optional[str]:
        """Send a transactional email using the Brevo API
        
        Args:
            to_email: Recipient email address
            subject: Subject line
            html: HTML body
        
        Returns:
            The Brevo message id, or None when sending is not configured
        
        Raises:
            EmailDeliveryError: Brevo rejected the message or could not be reached
        """
        if not self.api_key:
            logger.info(f"[Email] Would send to {to_email}: {subject}")
            return None
        
        url = f"{self.base_url}/smtp/email"
        
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.api_key
        }
        
        data = {
            "sender": {
                "name": settings.APP_NAME,
                "email": settings.EMAIL_FROM
            },
            "to": [{"email": to_email, "name": to_email.split('@')[0]}],
            "subject": subject,
            "htmlContent": html
        }
        
        logger.info(f"Sending email '{subject}' to {to_email}")
        
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=data, headers=headers) as response:
                    response_text = await response.text()
                    
                    if response.status == 201:
                        logger.info(f"Email successfully sent to {to_email}")
                        body = await response.json(content_type=None)
                        return body.get("messageId") if isinstance(body, dict) else None
                    
                    logger.error(f"Failed to send email to {to_email}. Status: {response.status}, Response: {response_text}")
                    raise EmailDeliveryError(f"Brevo returned {response.status}")
        except aiohttp.ClientError as e:
            logger.error(f"Email send error for {to_email}: {e}")
            raise EmailDeliveryError(str(e)) from e
    
    async def send_payment_link(self, to_email: str, payment_url: str, plan_name: str, amount: int) -> Optional[str]:
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #2563eb;">Payment for {plan_name}</h1>
            <p style="font-size: 16px; line-height: 1.6;">Amount: <strong>{amount:,}</strong></p>
            <p style="font-size: 16px; line-height: 1.6;">Please click the button below to complete your payment:</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{payment_url}" style="background: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">Pay Now</a>
            </p>
        </div>
        """
        return await self.send_email(to_email, f"Payment for {plan_name}", html)
    
    async def send_subscription_activated(self, to_email: str, plan_name: str, end_date) -> Optional[str]:
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #2563eb;">Subscription Activated</h1>
            <p style="font-size: 16px; line-height: 1.6;">Your subscription to <strong>{plan_name}</strong> is now active.</p>
            <p style="font-size: 14px; color: #666;">Expires on: {end_date:%Y-%m-%d}</p>
        </div>
        """
        return await self.send_email(to_email, f"Subscription Activated - {plan_name}", html)

# Create singleton instance
email_service = BrevoEmailService()
