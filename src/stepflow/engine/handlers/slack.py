"""
Slack Web API step handlers.

Every call authenticates with a bot or user token and returns the decoded
API response. Slack reports errors in the body (``"ok": false``) rather
than through the status code, so those are raised as TransportFailure too.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json
import logging

from stepflow.engine.handlers import handles
from stepflow.engine.handlers.http import decode_body, send_request
from stepflow.exceptions import TransportFailure, ValidationFailure

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


def slack_token(executor, step) -> str:
    """Token from the step's credential, else its inline api/bot token."""
    if step.credential_id:
        return executor.vault.resolve(step.credential_id, "slack", "token", "bot_token", "api_token")
    token = step.api_token or step.bot_token
    if not token:
        raise ValidationFailure("Slack API token is required (credentialId, apiToken or botToken)")
    return token


async def slack_api(
    executor,
    step,
    endpoint: str,
    payload: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> Dict[str, Any]:
    """
    Call a Slack Web API method.

    ``params`` are sent as a query string on a GET request; otherwise
    ``payload`` is posted as JSON.
    """
    headers = {"Authorization": f"Bearer {slack_token(executor, step)}"}
    if params is not None:
        method, request = "GET", {"params": params}
    elif kwargs:
        method, request = "POST", kwargs
    else:
        method, request = "POST", {"json": payload or {}}

    response = await send_request(
        executor.http_client,
        method,
        f"{SLACK_API_URL}{endpoint}",
        service="Slack",
        headers=headers,
        **request,
    )
    data = decode_body(response)
    if not isinstance(data, dict) or not data.get("ok"):
        error = data.get("error", "Unknown error") if isinstance(data, dict) else "Unknown error"
        raise TransportFailure(f"Slack API Error: {error}", status_code=response.status_code, body=response.text)
    return data


def _blocks(blocks_json: Optional[str]) -> Optional[List[Any]]:
    if not blocks_json:
        return None
    try:
        return json.loads(blocks_json)
    except ValueError as e:
        raise ValidationFailure(f"Invalid blocks JSON: {e}")


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _user_ids(value: Union[str, List[str]]) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [v for v in value if v]


@handles("slackSendMessage")
async def send_message(executor, step, ctx) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"channel": step.channel_id, "text": step.text}
    if step.thread_ts:
        payload["thread_ts"] = step.thread_ts
    if step.reply_broadcast is not None:
        payload["reply_broadcast"] = step.reply_broadcast
    if step.mrkdwn is not None:
        payload["mrkdwn"] = step.mrkdwn
    blocks = _blocks(step.blocks_json)
    if blocks is not None:
        payload["blocks"] = blocks
    return await slack_api(executor, step, "/chat.postMessage", payload)


@handles("slackUpdateMessage")
async def update_message(executor, step, ctx) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"channel": step.channel_id, "ts": step.timestamp, "text": step.text}
    blocks = _blocks(step.blocks_json)
    if blocks is not None:
        payload["blocks"] = blocks
    return await slack_api(executor, step, "/chat.update", payload)


@handles("slackDeleteMessage")
async def delete_message(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(executor, step, "/chat.delete", {"channel": step.channel_id, "ts": step.timestamp})


@handles("slackCreateChannel")
async def create_channel(executor, step, ctx) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"name": step.channel_name}
    if step.is_private is not None:
        payload["is_private"] = step.is_private
    data = await slack_api(executor, step, "/conversations.create", payload)

    if step.channel_description:
        channel_id = (data.get("channel") or {}).get("id")
        if channel_id:
            await slack_api(
                executor, step, "/conversations.setPurpose",
                {"channel": channel_id, "purpose": step.channel_description},
            )
    return data


@handles("slackGetChannel")
async def get_channel(executor, step, ctx) -> Dict[str, Any]:
    params = {"channel": step.channel_id}
    if step.include_num_members:
        params["include_num_members"] = "true"
    return await slack_api(executor, step, "/conversations.info", params=params)


@handles("slackListChannels")
async def list_channels(executor, step, ctx) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if step.limit:
        params["limit"] = step.limit
    if step.exclude_archived is not None:
        params["exclude_archived"] = _bool(step.exclude_archived)
    if step.types:
        params["types"] = step.types
    return await slack_api(executor, step, "/conversations.list", params=params)


@handles("slackInviteUsers")
async def invite_users(executor, step, ctx) -> Dict[str, Any]:
    users = _user_ids(step.user_ids)
    if not users:
        raise ValidationFailure("At least one user id is required")
    return await slack_api(
        executor, step, "/conversations.invite",
        {"channel": step.channel_id, "users": ",".join(users)},
    )


@handles("slackListMembers")
async def list_members(executor, step, ctx) -> Dict[str, Any]:
    params: Dict[str, Any] = {"channel": step.channel_id}
    if step.limit:
        params["limit"] = step.limit
    return await slack_api(executor, step, "/conversations.members", params=params)


@handles("slackAddReaction")
async def add_reaction(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(
        executor, step, "/reactions.add",
        {"channel": step.channel_id, "timestamp": step.timestamp, "name": step.reaction_emoji.strip(":")},
    )


@handles("slackGetUser")
async def get_user(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(executor, step, "/users.info", params={"user": step.user_id})


@handles("slackListUsers")
async def list_users(executor, step, ctx) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    if step.limit:
        params["limit"] = step.limit
    return await slack_api(executor, step, "/users.list", params=params)


@handles("slackUploadFile")
async def upload_file(executor, step, ctx) -> Dict[str, Any]:
    path = Path(step.file_path)
    if not path.is_file():
        raise ValidationFailure(f"File not found: {step.file_path}")

    form: Dict[str, Any] = {"channels": step.channel_id, "filename": step.file_name or path.name}
    if step.title:
        form["title"] = step.title
    if step.initial_comment:
        form["initial_comment"] = step.initial_comment

    return await slack_api(
        executor, step, "/files.upload",
        data=form,
        files={"file": (form["filename"], path.read_bytes())},
    )


@handles("slackGetHistory")
async def get_history(executor, step, ctx) -> Dict[str, Any]:
    params: Dict[str, Any] = {"channel": step.channel_id}
    if step.limit:
        params["limit"] = step.limit
    if step.oldest_timestamp:
        params["oldest"] = step.oldest_timestamp
    if step.latest_timestamp:
        params["latest"] = step.latest_timestamp
    return await slack_api(executor, step, "/conversations.history", params=params)


@handles("slackSetTopic")
async def set_topic(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(
        executor, step, "/conversations.setTopic",
        {"channel": step.channel_id, "topic": step.topic},
    )


@handles("slackArchiveChannel")
async def archive_channel(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(executor, step, "/conversations.archive", {"channel": step.channel_id})


@handles("slackUnarchiveChannel")
async def unarchive_channel(executor, step, ctx) -> Dict[str, Any]:
    return await slack_api(executor, step, "/conversations.unarchive", {"channel": step.channel_id})
