import urllib.request
import urllib.error
import urllib.parse
import json
import time
import logging
import random
from collections import OrderedDict
from typing import Any, Dict, Optional

from iga_bridge.validators import validate_slack_user_id

logger = logging.getLogger(__name__)

class SlackAPIError(Exception):
    """Base exception for Slack API errors."""
    pass

class SlackRateLimitError(SlackAPIError):
    """Raised when Slack rate limit is exceeded."""
    pass

class SlackAdapter:
    def __init__(self, bot_token: str, cache_max_size: int = 1000):
        """
        Initializes the Slack Adapter with the xoxb- Bot Token.

        Args:
            bot_token: Slack Bot Token (xoxb-...)
            cache_max_size: Maximum number of entries to cache (default 1000)
        """
        if not bot_token or not bot_token.startswith("xoxb-"):
            raise ValueError("A valid Slack Bot Token (xoxb-) is required.")

        if cache_max_size <= 0:
            raise ValueError(f"cache_max_size must be positive, got {cache_max_size}")

        self.bot_token = bot_token
        self.base_url = "https://slack.com/api"

        # LRU caches with bounded size to prevent memory leak
        self._email_cache: OrderedDict[str, str] = OrderedDict()
        self._dm_cache: OrderedDict[str, str] = OrderedDict()
        self._cache_max_size = cache_max_size

    def __repr__(self):
        return "SlackAdapter(token=***REDACTED***)"

    def _remember(self, cache: OrderedDict, key: str, value: str) -> None:
        if len(cache) >= self._cache_max_size:
            # Remove oldest entry (FIFO/LRU)
            cache.pop(next(iter(cache)))
            logger.debug("Cache full, evicted entry")
        cache[key] = value

    def _api_call(self, method: str, payload: Optional[Dict[str, Any]] = None,
                  http_method: str = "POST", max_retries: int = 3) -> Dict[str, Any]:
        """
        Calls a Slack Web API method and returns the parsed body.
        Handles HTTP 429 (Retry-After) and network errors with backoff.

        Raises:
            SlackAPIError: If Slack answers ok=false or an HTTP error
            SlackRateLimitError: If retries are exhausted
        """
        url = f"{self.base_url}/{method}"
        headers = {"Authorization": f"Bearer {self.bot_token}"}
        data = None

        if http_method == "GET":
            if payload:
                url = f"{url}?{urllib.parse.urlencode(payload)}"
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        else:
            data = json.dumps(payload or {}).encode("utf-8")
            headers["Content-Type"] = "application/json; charset=utf-8"

        # Validate URL scheme for security (Bandit B310)
        if not url.startswith("https://"):
            raise ValueError(f"Invalid URL scheme. Only HTTPS is allowed: {url}")

        for attempt in range(1, max_retries + 1):
            req = urllib.request.Request(url, data=data, headers=headers, method=http_method)
            try:
                with urllib.request.urlopen(req, timeout=10) as response:  # nosec B310
                    # Slack returns HTTP 200 even for logical errors, so we parse the JSON
                    body = json.loads(response.read().decode("utf-8"))

                    if not body.get("ok"):
                        error_msg = body.get("error", "Unknown Slack API error")
                        logger.error(f"Slack API rejected {method}: {error_msg}")
                        raise SlackAPIError(f"Slack API error: {error_msg}")
                    return body

            except urllib.error.HTTPError as e:
                if e.code == 429:
                    # Skip sleep on last attempt (no point retrying after)
                    if attempt == max_retries:
                        logger.error(f"Rate limited on final attempt for {method}")
                        break

                    retry_after_raw = e.headers.get("Retry-After", str(2 ** (attempt - 1)))
                    try:
                        retry_after = int(retry_after_raw)
                    except ValueError:
                        # If Retry-After is an HTTP date, default to exponential backoff
                        retry_after = 2 ** (attempt - 1)

                    logger.warning(
                        f"Rate limited by Slack (HTTP 429) on {method}. "
                        f"Waiting {retry_after} seconds... (Attempt {attempt}/{max_retries})"
                    )
                    time.sleep(retry_after)
                    continue
                else:
                    logger.error(f"HTTP Error calling Slack {method}: {e.code} - {e.reason}")
                    raise SlackAPIError(f"Slack API error: HTTP {e.code}")

            except urllib.error.URLError as e:
                # Handle network timeouts and connection errors
                if attempt == max_retries:
                    logger.error(f"Network error on final attempt for {method}: {e}")
                    raise SlackAPIError(f"Network error: {e}")

                logger.warning(f"Network error, retrying {method}... (Attempt {attempt}/{max_retries})")
                # Exponential backoff with jitter to prevent thundering herd
                backoff = 2 ** (attempt - 1)
                jitter = random.uniform(0, backoff * 0.5)
                time.sleep(backoff + jitter)
                continue

        logger.error(f"Slack {method} failed after {max_retries} retries.")
        raise SlackRateLimitError("Slack API rate limit exceeded max retries.")

    # --- USERS ---

    def get_user_email(self, slack_user_id: str) -> str:
        """
        Translates a Slack user ID (e.g., U1234ABCD, W1234ABCD) into a corporate email address.
        """
        slack_user_id = validate_slack_user_id(slack_user_id)

        if slack_user_id in self._email_cache:
            logger.info(f"Cache hit for {slack_user_id}")
            self._email_cache.move_to_end(slack_user_id)
            return self._email_cache[slack_user_id]

        data = self._api_call("users.info", {"user": slack_user_id}, http_method="GET")

        email = data.get("user", {}).get("profile", {}).get("email")
        if not email:
            raise SlackAPIError(f"User {slack_user_id} does not have an email address in their Slack profile.")

        self._remember(self._email_cache, slack_user_id, email)
        return email

    # --- MESSAGING ---

    def open_dm(self, slack_user_id: str) -> Optional[str]:
        """Returns the DM channel ID with a user (opening it if needed)."""
        if slack_user_id in self._dm_cache:
            self._dm_cache.move_to_end(slack_user_id)
            return self._dm_cache[slack_user_id]

        data = self._api_call("conversations.open", {"users": slack_user_id})
        channel_id = data.get("channel", {}).get("id")
        if channel_id:
            self._remember(self._dm_cache, slack_user_id, channel_id)
        return channel_id

    def post_message(self, channel_id: str, text: str) -> None:
        self._api_call("chat.postMessage", {"channel": channel_id, "text": text})

    def send_direct_message(self, slack_user_id: str, text: str) -> bool:
        """Sends a DM. Returns False if Slack gave us no channel to post to."""
        channel_id = self.open_dm(slack_user_id)
        if not channel_id:
            logger.warning(f"No DM channel available for {slack_user_id}")
            return False
        self.post_message(channel_id, text)
        return True

    # --- VIEWS ---

    def open_view(self, trigger_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
        return self._api_call("views.open", {"trigger_id": trigger_id, "view": view})

    def update_view(self, view_id: str, view: Dict[str, Any], view_hash: Optional[str] = None) -> Dict[str, Any]:
        payload = {"view_id": view_id, "view": view}
        if view_hash:
            payload["hash"] = view_hash
        return self._api_call("views.update", payload)

    def publish_home(self, slack_user_id: str, view: Dict[str, Any]) -> Dict[str, Any]:
        return self._api_call("views.publish", {"user_id": slack_user_id, "view": view})
