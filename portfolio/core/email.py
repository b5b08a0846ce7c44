# portfolio/core/email.py
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import sendgrid
from sendgrid.helpers.mail import Mail

from .config import settings

logger = logging.getLogger(__name__)


async def send_email_via_sendgrid(to_email: str, subject: str, body: str) -> bool:
    """
    Send an HTML email through the SendGrid API (blocking client run in a thread pool).
    Returns False instead of raising so callers decide what a failure means.
    """
    try:
        logger.info(f"Attempting to send email to {to_email}")

        if not to_email or "@" not in to_email:
            logger.error(f"Invalid email format: {to_email}")
            return False

        if not settings.SENDGRID_API_KEY:
            logger.error("SendGrid API key not configured. Please set SENDGRID_API_KEY in .env")
            return False

        message = Mail(
            from_email=(settings.EMAIL_FROM, settings.EMAIL_FROM_NAME),
            to_emails=to_email,
            subject=subject,
            html_content=body
        )
        message.reply_to = settings.EMAIL_FROM

        sg = sendgrid.SendGridAPIClient(api_key=settings.SENDGRID_API_KEY)

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor() as executor:
            response = await loop.run_in_executor(executor, sg.send, message)

        if response.status_code == 202:
            logger.info(f"✅ Email sent successfully to {to_email}")
            return True
        else:
            logger.error(f"❌ Failed to send email. Status code: {response.status_code}")
            logger.error(f"Response body: {response.body}")
            return False

    except Exception as e:
        logger.error(f"❌ Exception while sending email to {to_email}: {str(e)}")
        return False


CODE_EMAIL_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f4f4f4;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff; padding: 20px;">
        <div style="text-align: center; padding: 20px 0; border-bottom: 1px solid #eee;">
            <h1 style="color: #667eea; margin: 0; font-size: 24px;">{app_name}</h1>
        </div>

        <div style="padding: 30px 20px;">
            <h2 style="color: #333; margin-bottom: 20px;">{heading}</h2>

            <p style="color: #666; line-height: 1.6; margin-bottom: 20px;">
                Hello <strong>{user_name}</strong>,
            </p>

            <p style="color: #666; line-height: 1.6; margin-bottom: 30px;">
                {intro}
            </p>

            <div style="background: #ffffff; border: 2px dashed #667eea; border-radius: 8px; padding: 20px; text-align: center; margin: 20px 0;">
                <h1 style="color: #667eea; font-size: 36px; letter-spacing: 8px; margin: 0; font-family: 'Courier New', monospace;">{code}</h1>
            </div>

            <p style="color: #666; font-size: 14px;">This code will expire in {minutes} minutes.</p>
            <p style="color: #666; font-size: 14px;">{footnote}</p>
        </div>

        <div style="text-align: center; padding: 20px; border-top: 1px solid #eee; color: #999; font-size: 12px;">
            <p style="margin: 0;">This is an automated message. Please do not reply to this email.</p>
        </div>
    </div>
</body>
</html>
"""


def render_code_email(title: str, heading: str, intro: str, code: str, user_name: str,
                      minutes: int, footnote: str) -> str:
    return CODE_EMAIL_TEMPLATE.format(
        title=title,
        app_name=settings.EMAIL_FROM_NAME,
        heading=heading,
        intro=intro,
        code=code,
        user_name=user_name,
        minutes=minutes,
        footnote=footnote,
    )


async def send_two_factor_code(email: str, code: str, name: str) -> bool:
    body = render_code_email(
        title="2FA Code",
        heading="Two-Factor Authentication",
        intro="You've requested a two-factor authentication code. Use the code below to complete your login:",
        code=code,
        user_name=name,
        minutes=10,
        footnote="If you didn't request this code, please ignore this email or contact support if you have concerns.",
    )
    return await send_email_via_sendgrid(email, "Your Two-Factor Authentication Code", body)


async def send_email_verification_code(email: str, code: str, name: str) -> bool:
    body = render_code_email(
        title="Verify Email",
        heading="Verify Your New Email Address",
        intro="You've requested to change the email address on your account. Enter the code below to confirm this address:",
        code=code,
        user_name=name,
        minutes=30,
        footnote="If you didn't request this change, please ignore this email. Your current address stays active.",
    )
    return await send_email_via_sendgrid(email, "Verify Your New Email Address", body)


async def send_password_reset_code(email: str, code: str, name: str) -> bool:
    body = render_code_email(
        title="Reset Password",
        heading="Password Reset Request",
        intro="We received a request to reset your password. Use the code below to set a new password:",
        code=code,
        user_name=name,
        minutes=30,
        footnote="If you didn't request a password reset, please ignore this email. Your password will remain unchanged.",
    )
    return await send_email_via_sendgrid(email, "Reset Your Password", body)
