"""
Tool Catalog - the steps an agent may call, described once for every provider.

Each ToolSpec knows its JSON-schema parameters (rendered per provider by
the codecs in ``stepflow.llm.codecs``) and how to turn the arguments of a
call back into a step dict.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from stepflow.engine.variables import stringify
from stepflow.exceptions import ValidationFailure
from stepflow.interfaces.llm import ToolDefinition


@dataclass
class ToolParameter:
    """
    One argument of a tool.

    Attributes:
        name: Argument name as the model sees it
        type: JSON schema type
        description: What the argument means
        required: Whether the model must supply it
        enum: Allowed values, if restricted
    """
    name: str
    type: str = "string"
    description: str = ""
    required: bool = True
    enum: Optional[List[str]] = None

    def to_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        return schema


@dataclass
class ToolSpec:
    """
    A tool the agent can call.

    Attributes:
        name: Tool name (the step type it maps to)
        description: Shown to the model
        category: Grouping for listings (browser, data, http, social)
        parameters: Accepted arguments
        build: Turns validated arguments into a step dict
    """
    name: str
    description: str
    category: str
    parameters: List[ToolParameter] = field(default_factory=list)
    build: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters={
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            },
        )

    def to_step(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Translate call arguments into a step dict.

        Raises:
            ValidationFailure: If a required argument is missing
        """
        missing = [
            p.name for p in self.parameters
            if p.required and arguments.get(p.name) in (None, "")
        ]
        if missing:
            raise ValidationFailure(f"Missing required argument(s) for {self.name}: {', '.join(missing)}")

        known = {p.name for p in self.parameters}
        args = {k: v for k, v in arguments.items() if k in known and v is not None}
        step = self.build(args) if self.build else dict(args)
        step["type"] = self.name
        return step


def _selector(description: str = "CSS selector or XPath of the element") -> ToolParameter:
    return ToolParameter("selector", "string", description)


def _credential(service: str) -> ToolParameter:
    return ToolParameter("credential_id", "string", f"Id of the stored {service} credential", required=False)


def _scroll(args: Dict[str, Any]) -> Dict[str, Any]:
    if args.get("selector"):
        return {"scrollType": "toElement", "selector": args["selector"]}
    return {"scrollType": "byAmount", "scrollAmount": int(args.get("amount", 500))}


TOOLS: List[ToolSpec] = [
    ToolSpec(
        "navigate", "Open a URL in the browser.", "browser",
        [ToolParameter("url", "string", "Absolute URL to open")],
        lambda a: {"value": a["url"]},
    ),
    ToolSpec(
        "click", "Click an element.", "browser",
        [_selector()],
    ),
    ToolSpec(
        "type", "Type text into an input element.", "browser",
        [_selector("Input element to type into"), ToolParameter("text", "string", "Text to type")],
        lambda a: {"selector": a["selector"], "value": str(a["text"])},
    ),
    ToolSpec(
        "extract", "Read the text content of an element.", "browser",
        [_selector(), ToolParameter("store_key", "string", "Variable to save the text under", required=False)],
        lambda a: {"selector": a["selector"], "storeKey": a.get("store_key")},
    ),
    ToolSpec(
        "screenshot", "Take a full-page screenshot and return the file path.", "browser",
        [ToolParameter("path", "string", "Where to save the PNG", required=False)],
        lambda a: {"savePath": a.get("path")},
    ),
    ToolSpec(
        "wait", "Wait a number of seconds.", "browser",
        [ToolParameter("seconds", "number", "Seconds to wait")],
        lambda a: {"value": str(a["seconds"])},
    ),
    ToolSpec(
        "scroll", "Scroll to an element, or scroll the page by a pixel amount.", "browser",
        [
            ToolParameter("selector", "string", "Element to scroll into view", required=False),
            ToolParameter("amount", "integer", "Pixels to scroll when no selector is given", required=False),
        ],
        _scroll,
    ),
    ToolSpec(
        "hover", "Move the mouse over an element.", "browser",
        [_selector()],
    ),
    ToolSpec(
        "selectOption", "Choose an option in a <select> element.", "browser",
        [
            _selector("The <select> element"),
            ToolParameter("value", "string", "Option value", required=False),
            ToolParameter("index", "integer", "Option index", required=False),
        ],
        lambda a: {"selector": a["selector"], "optionValue": a.get("value"), "optionIndex": a.get("index")},
    ),
    ToolSpec(
        "apiCall", "Make an HTTP request and return the response body.", "http",
        [
            ToolParameter("url", "string", "Request URL"),
            ToolParameter("method", "string", "HTTP method", required=False,
                          enum=["GET", "POST", "PUT", "PATCH", "DELETE"]),
            ToolParameter("body", "string", "Request body (JSON text)", required=False),
            ToolParameter("headers", "object", "Request headers", required=False),
        ],
        lambda a: {
            "url": a["url"],
            "method": a.get("method", "GET"),
            "body": a.get("body"),
            "headers": {str(k): str(v) for k, v in (a.get("headers") or {}).items()},
        },
    ),
    ToolSpec(
        "setVariable", "Store a value in a variable. Numbers, booleans and JSON are typed automatically.", "data",
        [ToolParameter("name", "string", "Variable name"), ToolParameter("value", "string", "Value to store")],
        lambda a: {
            "variableName": a["name"],
            "value": a["value"] if isinstance(a["value"], str) else stringify(a["value"]),
        },
    ),
    ToolSpec(
        "getVariable", "Read the value of a variable.", "data",
        [ToolParameter("name", "string", "Variable name")],
        lambda a: {"variableName": a["name"]},
    ),
    ToolSpec(
        "twitterCreateTweet", "Post a tweet.", "social",
        [
            ToolParameter("text", "string", "Tweet text"),
            ToolParameter("reply_to_tweet_id", "string", "Tweet to reply to", required=False),
            _credential("Twitter"),
        ],
        lambda a: {
            "text": a["text"],
            "replyToTweetId": a.get("reply_to_tweet_id"),
            "credentialId": a.get("credential_id"),
        },
    ),
    ToolSpec(
        "twitterSearchTweets", "Search recent tweets.", "social",
        [
            ToolParameter("query", "string", "Search query"),
            ToolParameter("max_results", "integer", "Number of results (10-100)", required=False),
            _credential("Twitter"),
        ],
        lambda a: {
            "searchQuery": a["query"],
            "maxResults": min(max(int(a.get("max_results", 10)), 10), 100),
            "credentialId": a.get("credential_id"),
        },
    ),
    ToolSpec(
        "discordSendMessage", "Send a message to a Discord channel.", "social",
        [
            ToolParameter("channel_id", "string", "Discord channel id"),
            ToolParameter("content", "string", "Message text"),
            _credential("Discord"),
        ],
        lambda a: {"channelId": a["channel_id"], "content": a["content"], "credentialId": a.get("credential_id")},
    ),
]


def get_catalog(allowed: Optional[Sequence[str]] = None) -> Dict[str, ToolSpec]:
    """
    Tools by name, optionally restricted to an allow-list.

    Unknown names in ``allowed`` are ignored.
    """
    tools = {tool.name: tool for tool in TOOLS}
    if allowed is None:
        return tools
    return {name: tools[name] for name in allowed if name in tools}


def tool_definitions(catalog: Dict[str, ToolSpec]) -> List[ToolDefinition]:
    return [tool.to_definition() for tool in catalog.values()]
