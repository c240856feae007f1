"""
SMS delivery of one-time codes through the HTTP gateway configured by
SMS_API_URL / SMS_API_KEY / SMS_API_SECRET
"""

import logging

import aiohttp

from ..config import SMS_API_KEY, SMS_API_SECRET, SMS_API_URL, SMS_SENDER

logger = logging.getLogger(__name__)


class SmsError(Exception):
    """The gateway is not configured or refused the message"""


async def send_otp(phone: int, code: str) -> dict:
    """
    Send a one-time code to a Lao phone number

    Raises:
        SmsError: If the message could not be handed to the gateway
    """
    if not SMS_API_URL or not SMS_API_KEY:
        raise SmsError("SMS gateway is not configured")

    payload = {"Title": SMS_SENDER, "Phone": str(phone), "Message": f"Your OTP: {code}"}
    headers = {"apikey": SMS_API_KEY, "secret": SMS_API_SECRET}
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
            async with session.post(SMS_API_URL, json=payload, headers=headers) as response:
                body = await response.text()
                if response.status >= 400:
                    raise SmsError(f"SMS gateway returned HTTP {response.status}: {body[:200]}")
    except aiohttp.ClientError as e:
        raise SmsError(f"SMS gateway unreachable: {e}") from e

    logger.info(f"📱 OTP sent to {phone}")
    return {"status": response.status}
