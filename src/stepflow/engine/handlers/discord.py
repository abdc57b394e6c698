"""
Discord REST API step handlers.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote
import json
import logging

from stepflow.engine.handlers import handles
from stepflow.engine.handlers.http import decode_body, send_request
from stepflow.exceptions import ValidationFailure

logger = logging.getLogger(__name__)

DISCORD_API_URL = "https://discord.com/api/v10"


def discord_token(executor, step) -> str:
    if step.credential_id:
        return executor.vault.resolve(step.credential_id, "discord", "bot_token", "token")
    if not step.bot_token:
        raise ValidationFailure("Discord bot token is required (credentialId or botToken)")
    return step.bot_token


async def discord_api(
    executor,
    step,
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    headers = {"Authorization": f"Bot {discord_token(executor, step)}"}
    kwargs: Dict[str, Any] = {"headers": headers}
    if payload is not None:
        kwargs["json"] = payload
    if params:
        kwargs["params"] = params
    response = await send_request(
        executor.http_client, method, f"{DISCORD_API_URL}{path}", service="Discord", **kwargs
    )
    return decode_body(response)


@handles("discordSendMessage")
async def send_message(executor, step, ctx) -> Any:
    if not step.content:
        raise ValidationFailure("Message content is required")
    return await discord_api(
        executor, step, "POST", f"/channels/{step.channel_id}/messages",
        {"content": step.content, "tts": step.tts},
    )


@handles("discordSendWebhook")
async def send_webhook(executor, step, ctx) -> Dict[str, Any]:
    """Post through a webhook URL; needs no bot token."""
    payload: Dict[str, Any] = {"content": step.content, "tts": step.tts}
    if step.username:
        payload["username"] = step.username
    if step.avatar_url:
        payload["avatar_url"] = step.avatar_url
    if step.embeds_json:
        try:
            payload["embeds"] = json.loads(step.embeds_json)
        except ValueError as e:
            raise ValidationFailure(f"Invalid embeds JSON: {e}")
    if not payload["content"] and "embeds" not in payload:
        raise ValidationFailure("Webhook needs content or embeds")

    response = await send_request(
        executor.http_client, "POST", step.webhook_url, service="Discord webhook", json=payload
    )
    return {"success": True, "status": response.status_code}


@handles("discordReactMessage")
async def react_message(executor, step, ctx) -> Dict[str, Any]:
    emoji = quote(step.emoji, safe="")
    await discord_api(
        executor, step, "PUT",
        f"/channels/{step.channel_id}/messages/{step.message_id}/reactions/{emoji}/@me",
    )
    return {"success": True}


@handles("discordGetMessage")
async def get_message(executor, step, ctx) -> Any:
    return await discord_api(executor, step, "GET", f"/channels/{step.channel_id}/messages/{step.message_id}")


@handles("discordListMessages")
async def list_messages(executor, step, ctx) -> Any:
    limit = min(max(step.limit or 10, 1), 100)
    return await discord_api(
        executor, step, "GET", f"/channels/{step.channel_id}/messages", params={"limit": limit}
    )


@handles("discordDeleteMessage")
async def delete_message(executor, step, ctx) -> Dict[str, Any]:
    await discord_api(executor, step, "DELETE", f"/channels/{step.channel_id}/messages/{step.message_id}")
    return {"success": True}
