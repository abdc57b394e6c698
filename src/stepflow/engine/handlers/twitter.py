"""
Twitter/X API v2 step handlers.

Requests are signed with OAuth 1.0a (HMAC-SHA1) user context, so each
step needs the app's key and secret plus the user's access token and
secret, either inline or through a ``twitter`` credential.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, quote, urlsplit
import base64
import hashlib
import hmac
import logging
import re
import secrets
import time

from stepflow.engine.handlers import handles
from stepflow.engine.handlers.http import decode_body, send_request
from stepflow.exceptions import TransportFailure, ValidationFailure

logger = logging.getLogger(__name__)

TWITTER_API_URL = "https://api.twitter.com/2"

_STATUS_URL = re.compile(r"(?:twitter\.com|x\.com)/[^/]+/status(?:es)?/(\d+)")


@dataclass
class OAuthCredentials:
    api_key: str
    api_secret: str
    access_token: str
    access_secret: str


def percent_encode(value: str) -> str:
    """RFC 3986 encoding, as OAuth 1.0a requires."""
    return quote(str(value), safe="-._~")


def oauth_header(
    method: str,
    url: str,
    creds: OAuthCredentials,
    nonce: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> str:
    """
    Build the ``Authorization: OAuth ...`` header for a request.

    Query parameters of ``url`` take part in the signature; JSON bodies
    do not.
    """
    parts = urlsplit(url)
    base_url = f"{parts.scheme}://{parts.netloc}{parts.path}"

    oauth_params = {
        "oauth_consumer_key": creds.api_key,
        "oauth_nonce": nonce or secrets.token_hex(16),
        "oauth_signature_method": "HMAC-SHA1",
        "oauth_timestamp": timestamp or str(int(time.time())),
        "oauth_token": creds.access_token,
        "oauth_version": "1.0",
    }

    params = list(oauth_params.items()) + parse_qsl(parts.query, keep_blank_values=True)
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params)
    param_string = "&".join(f"{k}={v}" for k, v in encoded)

    base_string = "&".join([method.upper(), percent_encode(base_url), percent_encode(param_string)])
    signing_key = f"{percent_encode(creds.api_secret)}&{percent_encode(creds.access_secret)}"
    digest = hmac.new(signing_key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
    oauth_params["oauth_signature"] = base64.b64encode(digest).decode("ascii")

    header = ", ".join(
        f'{percent_encode(k)}="{percent_encode(v)}"' for k, v in sorted(oauth_params.items())
    )
    return f"OAuth {header}"


def extract_tweet_id(value: str) -> str:
    """Accept a bare tweet id or a twitter.com / x.com status URL."""
    value = value.strip()
    match = _STATUS_URL.search(value)
    if match:
        return match.group(1)
    if value.isdigit():
        return value
    raise ValidationFailure(f"Invalid tweet id or URL: {value}")


def twitter_credentials(executor, step) -> OAuthCredentials:
    if step.credential_id:
        cred = executor.vault.require(step.credential_id, "twitter")
        values = [
            cred.first("api_key", "consumer_key"),
            cred.first("api_secret", "consumer_secret"),
            cred.first("access_token"),
            cred.first("access_secret", "access_token_secret"),
        ]
    else:
        values = [step.api_key, step.api_secret, step.access_token, step.access_secret]

    if not all(values):
        raise ValidationFailure(
            "Twitter credentials are incomplete (api key/secret and access token/secret are required)"
        )
    return OAuthCredentials(*values)


async def twitter_api(
    executor,
    creds: OAuthCredentials,
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    request = executor.http_client.build_request(method, f"{TWITTER_API_URL}{path}", params=params)
    url = str(request.url)
    headers = {"Authorization": oauth_header(method, url, creds)}
    kwargs: Dict[str, Any] = {"headers": headers}
    if payload is not None:
        kwargs["json"] = payload
    response = await send_request(executor.http_client, method, url, service="Twitter", **kwargs)
    return decode_body(response)


async def _me(executor, creds: OAuthCredentials) -> str:
    data = await twitter_api(executor, creds, "GET", "/users/me")
    user_id = (data or {}).get("data", {}).get("id")
    if not user_id:
        raise TransportFailure("Could not determine the authenticated Twitter user")
    return user_id


async def _user_by_name(executor, creds: OAuthCredentials, username: str) -> Dict[str, Any]:
    name = username.strip().lstrip("@")
    if not name:
        raise ValidationFailure("Username is required")
    data = await twitter_api(executor, creds, "GET", f"/users/by/username/{quote(name, safe='')}")
    user = (data or {}).get("data")
    if not user:
        raise TransportFailure(f"Twitter user not found: {name}")
    return user


@handles("twitterCreateTweet")
async def create_tweet(executor, step, ctx) -> Any:
    if not step.text.strip():
        raise ValidationFailure("Tweet text is required")
    creds = twitter_credentials(executor, step)
    payload: Dict[str, Any] = {"text": step.text}
    if step.reply_to_tweet_id:
        payload["reply"] = {"in_reply_to_tweet_id": extract_tweet_id(step.reply_to_tweet_id)}
    if step.quote_tweet_id:
        payload["quote_tweet_id"] = extract_tweet_id(step.quote_tweet_id)
    if step.media_id:
        payload["media"] = {"media_ids": [m.strip() for m in step.media_id.split(",") if m.strip()]}
    return await twitter_api(executor, creds, "POST", "/tweets", payload)


@handles("twitterDeleteTweet")
async def delete_tweet(executor, step, ctx) -> Any:
    creds = twitter_credentials(executor, step)
    return await twitter_api(executor, creds, "DELETE", f"/tweets/{extract_tweet_id(step.tweet_id)}")


@handles("twitterLikeTweet")
async def like_tweet(executor, step, ctx) -> Any:
    creds = twitter_credentials(executor, step)
    tweet_id = extract_tweet_id(step.tweet_id)
    user_id = await _me(executor, creds)
    return await twitter_api(executor, creds, "POST", f"/users/{user_id}/likes", {"tweet_id": tweet_id})


@handles("twitterRetweet")
async def retweet(executor, step, ctx) -> Any:
    creds = twitter_credentials(executor, step)
    tweet_id = extract_tweet_id(step.tweet_id)
    user_id = await _me(executor, creds)
    return await twitter_api(executor, creds, "POST", f"/users/{user_id}/retweets", {"tweet_id": tweet_id})


@handles("twitterSearchTweets")
async def search_tweets(executor, step, ctx) -> Any:
    if not step.search_query.strip():
        raise ValidationFailure("Search query is required")
    creds = twitter_credentials(executor, step)
    params: Dict[str, Any] = {"query": step.search_query, "max_results": step.max_results}
    if step.start_time:
        params["start_time"] = step.start_time
    if step.end_time:
        params["end_time"] = step.end_time
    return await twitter_api(executor, creds, "GET", "/tweets/search/recent", params=params)


@handles("twitterSendDM")
async def send_dm(executor, step, ctx) -> Any:
    if not step.text.strip():
        raise ValidationFailure("Message text is required")
    creds = twitter_credentials(executor, step)
    recipient = step.user_id.strip()
    if not recipient.isdigit():
        recipient = (await _user_by_name(executor, creds, recipient))["id"]

    payload: Dict[str, Any] = {"text": step.text}
    if step.media_id:
        payload["attachments"] = [{"media_id": step.media_id}]
    return await twitter_api(executor, creds, "POST", f"/dm_conversations/with/{recipient}/messages", payload)


@handles("twitterSearchUser")
async def search_user(executor, step, ctx) -> Dict[str, Any]:
    creds = twitter_credentials(executor, step)
    return await _user_by_name(executor, creds, step.username)
