"""
Step models - the closed, tagged union of everything a graph node can do.

Steps arrive as JSON produced by the editor (camelCase keys) and are
validated into one pydantic model per ``type``. An unknown ``type`` fails
validation, so the executor never has to guess.

Example:
    >>> step = parse_step({"id": "s1", "type": "click", "selector": "#go"})
    >>> type(step).__name__
    'ClickStep'
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union, get_args
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from stepflow.exceptions import ValidationFailure


ComparisonOp = Literal["equals", "contains", "greaterThan", "lessThan"]
TransformType = Literal["none", "stripCurrency", "stripNonNumeric", "removeChars", "regexReplace"]
AIProviderName = Literal["openai", "anthropic", "ollama"]


class WireModel(BaseModel):
    """Base for models read from editor JSON (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class StepBase(WireModel):
    id: str = Field(default_factory=lambda: uuid4().hex[:8])
    description: str = ""
    store_key: Optional[str] = None

    @field_validator("store_key")
    @classmethod
    def _blank_store_key(cls, value: Optional[str]) -> Optional[str]:
        return value or None


# ==================== Browser ====================

class NavigateStep(StepBase):
    type: Literal["navigate"] = "navigate"
    value: str = Field(validation_alias=AliasChoices("value", "url"))


class ClickStep(StepBase):
    type: Literal["click"] = "click"
    selector: str


class TypeStep(StepBase):
    type: Literal["type"] = "type"
    selector: str
    value: str = ""
    credential_id: Optional[str] = None


class WaitStep(StepBase):
    """Waits ``value`` seconds."""
    type: Literal["wait"] = "wait"
    value: Union[str, int, float] = "0"


class ScreenshotStep(StepBase):
    type: Literal["screenshot"] = "screenshot"
    save_path: Optional[str] = None


class ExtractStep(StepBase):
    type: Literal["extract"] = "extract"
    selector: str


class ExtractWithLogicStep(StepBase):
    """Extract text and record whether it satisfies a comparison."""
    type: Literal["extractWithLogic"] = "extractWithLogic"
    selector: str
    condition: ComparisonOp = "equals"
    expected_value: Union[str, int, float] = ""


class ScrollStep(StepBase):
    type: Literal["scroll"] = "scroll"
    scroll_type: Literal["toElement", "byAmount"] = "byAmount"
    selector: Optional[str] = None
    scroll_amount: Optional[int] = None


class SelectOptionStep(StepBase):
    type: Literal["selectOption"] = "selectOption"
    selector: str
    option_value: Optional[str] = None
    option_index: Optional[int] = None


class FileUploadStep(StepBase):
    type: Literal["fileUpload"] = "fileUpload"
    selector: str
    file_path: str


class HoverStep(StepBase):
    type: Literal["hover"] = "hover"
    selector: str


class EvaluateStep(StepBase):
    type: Literal["evaluate"] = "evaluate"
    script: str


# ==================== Variables ====================

class SetVariableStep(StepBase):
    type: Literal["setVariable"] = "setVariable"
    variable_name: str
    value: Any = ""


class ModifyVariableStep(StepBase):
    type: Literal["modifyVariable"] = "modifyVariable"
    variable_name: str
    operation: Literal["set", "increment", "decrement", "append"] = "set"
    value: Any = ""


class GetVariableStep(StepBase):
    type: Literal["getVariable"] = "getVariable"
    variable_name: str


# ==================== HTTP ====================

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class ApiCallStep(StepBase):
    type: Literal["apiCall"] = "apiCall"
    method: HttpMethod = "GET"
    url: str
    body: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    timeout_ms: int = 30000

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class WebhookAuth(WireModel):
    type: Literal["none", "basic", "bearer", "apiKey"] = "none"
    username: str = ""
    password: str = ""
    token: str = ""
    api_key: str = ""
    api_key_header: str = "X-API-Key"


class RetryPolicy(WireModel):
    max_retries: int = Field(default=0, ge=0, le=10)
    retry_delay: int = Field(default=1000, ge=0)


class WebhookStep(StepBase):
    type: Literal["webhook"] = "webhook"
    url: str
    method: HttpMethod = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    authentication: Optional[WebhookAuth] = None
    retry_policy: Optional[RetryPolicy] = None
    timeout_ms: int = 30000


# ==================== AI ====================

class AIStepBase(StepBase):
    prompt: str = ""
    system_prompt: str = ""
    model: str = ""
    temperature: float = 0.0
    max_tokens: int = 256
    top_p: Optional[float] = None
    timeout_ms: int = 20000
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    credential_id: Optional[str] = None


class AIOpenAIStep(AIStepBase):
    type: Literal["aiOpenAI"] = "aiOpenAI"


class AIAnthropicStep(AIStepBase):
    type: Literal["aiAnthropic"] = "aiAnthropic"


class AIOllamaStep(AIStepBase):
    type: Literal["aiOllama"] = "aiOllama"


class AIAgentStep(StepBase):
    """Hand a goal to the tool-calling agent."""
    type: Literal["aiAgent"] = "aiAgent"
    provider: AIProviderName = "openai"
    model: str = ""
    goal: str
    system_prompt: Optional[str] = None
    temperature: float = 0.0
    max_tokens: int = 2048
    max_iterations: Optional[int] = None
    allowed_tools: Optional[List[str]] = None
    timeout_ms: int = 20000
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    credential_id: Optional[str] = None


# ==================== Slack ====================

class SlackStepBase(StepBase):
    credential_id: Optional[str] = None
    api_token: Optional[str] = None
    bot_token: Optional[str] = None


class SlackSendMessageStep(SlackStepBase):
    type: Literal["slackSendMessage"] = "slackSendMessage"
    channel_id: str
    text: str = ""
    thread_ts: Optional[str] = None
    reply_broadcast: Optional[bool] = None
    mrkdwn: Optional[bool] = None
    blocks_json: Optional[str] = None


class SlackUpdateMessageStep(SlackStepBase):
    type: Literal["slackUpdateMessage"] = "slackUpdateMessage"
    channel_id: str
    timestamp: str
    text: str = ""
    blocks_json: Optional[str] = None


class SlackDeleteMessageStep(SlackStepBase):
    type: Literal["slackDeleteMessage"] = "slackDeleteMessage"
    channel_id: str
    timestamp: str


class SlackCreateChannelStep(SlackStepBase):
    type: Literal["slackCreateChannel"] = "slackCreateChannel"
    channel_name: str
    is_private: Optional[bool] = None
    channel_description: Optional[str] = None


class SlackGetChannelStep(SlackStepBase):
    type: Literal["slackGetChannel"] = "slackGetChannel"
    channel_id: str
    include_num_members: bool = False


class SlackListChannelsStep(SlackStepBase):
    type: Literal["slackListChannels"] = "slackListChannels"
    limit: Optional[int] = None
    exclude_archived: Optional[bool] = None
    types: Optional[str] = None


class SlackInviteUsersStep(SlackStepBase):
    type: Literal["slackInviteUsers"] = "slackInviteUsers"
    channel_id: str
    user_ids: Union[str, List[str]]


class SlackListMembersStep(SlackStepBase):
    type: Literal["slackListMembers"] = "slackListMembers"
    channel_id: str
    limit: Optional[int] = None


class SlackAddReactionStep(SlackStepBase):
    type: Literal["slackAddReaction"] = "slackAddReaction"
    channel_id: str
    timestamp: str
    reaction_emoji: str


class SlackGetUserStep(SlackStepBase):
    type: Literal["slackGetUser"] = "slackGetUser"
    user_id: str


class SlackListUsersStep(SlackStepBase):
    type: Literal["slackListUsers"] = "slackListUsers"
    limit: Optional[int] = None


class SlackUploadFileStep(SlackStepBase):
    type: Literal["slackUploadFile"] = "slackUploadFile"
    channel_id: str
    file_path: str
    file_name: Optional[str] = None
    title: Optional[str] = None
    initial_comment: Optional[str] = None


class SlackGetHistoryStep(SlackStepBase):
    type: Literal["slackGetHistory"] = "slackGetHistory"
    channel_id: str
    limit: Optional[int] = None
    oldest_timestamp: Optional[str] = None
    latest_timestamp: Optional[str] = None


class SlackSetTopicStep(SlackStepBase):
    type: Literal["slackSetTopic"] = "slackSetTopic"
    channel_id: str
    topic: str


class SlackArchiveChannelStep(SlackStepBase):
    type: Literal["slackArchiveChannel"] = "slackArchiveChannel"
    channel_id: str


class SlackUnarchiveChannelStep(SlackStepBase):
    type: Literal["slackUnarchiveChannel"] = "slackUnarchiveChannel"
    channel_id: str


# ==================== Discord ====================

class DiscordStepBase(StepBase):
    credential_id: Optional[str] = None
    bot_token: Optional[str] = None


class DiscordSendMessageStep(DiscordStepBase):
    type: Literal["discordSendMessage"] = "discordSendMessage"
    channel_id: str
    content: str
    tts: bool = False


class DiscordSendWebhookStep(DiscordStepBase):
    type: Literal["discordSendWebhook"] = "discordSendWebhook"
    webhook_url: str
    content: str = ""
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    tts: bool = False
    embeds_json: Optional[str] = None


class DiscordReactMessageStep(DiscordStepBase):
    type: Literal["discordReactMessage"] = "discordReactMessage"
    channel_id: str
    message_id: str
    emoji: str


class DiscordGetMessageStep(DiscordStepBase):
    type: Literal["discordGetMessage"] = "discordGetMessage"
    channel_id: str
    message_id: str


class DiscordListMessagesStep(DiscordStepBase):
    type: Literal["discordListMessages"] = "discordListMessages"
    channel_id: str
    limit: Optional[int] = None


class DiscordDeleteMessageStep(DiscordStepBase):
    type: Literal["discordDeleteMessage"] = "discordDeleteMessage"
    channel_id: str
    message_id: str


# ==================== Twitter / X ====================

class TwitterStepBase(StepBase):
    credential_id: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    access_secret: Optional[str] = None


class TwitterCreateTweetStep(TwitterStepBase):
    type: Literal["twitterCreateTweet"] = "twitterCreateTweet"
    text: str
    reply_to_tweet_id: Optional[str] = None
    quote_tweet_id: Optional[str] = None
    media_id: Optional[str] = None


class TwitterDeleteTweetStep(TwitterStepBase):
    type: Literal["twitterDeleteTweet"] = "twitterDeleteTweet"
    tweet_id: str


class TwitterLikeTweetStep(TwitterStepBase):
    type: Literal["twitterLikeTweet"] = "twitterLikeTweet"
    tweet_id: str


class TwitterRetweetStep(TwitterStepBase):
    type: Literal["twitterRetweet"] = "twitterRetweet"
    tweet_id: str


class TwitterSearchTweetsStep(TwitterStepBase):
    type: Literal["twitterSearchTweets"] = "twitterSearchTweets"
    search_query: str
    max_results: int = Field(default=10, ge=10, le=100)
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class TwitterSendDMStep(TwitterStepBase):
    type: Literal["twitterSendDM"] = "twitterSendDM"
    user_id: str
    text: str
    media_id: Optional[str] = None


class TwitterSearchUserStep(TwitterStepBase):
    type: Literal["twitterSearchUser"] = "twitterSearchUser"
    username: str


# ==================== System ====================

class FileSystemStep(StepBase):
    type: Literal["fileSystem"] = "fileSystem"
    operation: Literal["read", "write", "copy", "move", "delete", "exists"]
    source_path: str
    destination_path: Optional[str] = None
    content: Optional[str] = None
    encoding: str = "utf-8"


class SystemCommandStep(StepBase):
    type: Literal["systemCommand"] = "systemCommand"
    command: str
    args: List[str] = Field(default_factory=list)
    working_directory: Optional[str] = None
    timeout_ms: int = 60000


class EnvironmentVariableStep(StepBase):
    type: Literal["environmentVariable"] = "environmentVariable"
    operation: Literal["get", "set"] = "get"
    variable_name: str
    value: Optional[str] = None


class DataTransformStep(StepBase):
    type: Literal["dataTransform"] = "dataTransform"
    operation: Literal["parse", "stringify"]
    input_format: Literal["json", "yaml"] = "json"
    output_format: Literal["json", "yaml"] = "json"
    input: str


class DatabaseQueryStep(StepBase):
    type: Literal["databaseQuery"] = "databaseQuery"
    database_type: str = ""
    connection_string: str = ""
    query: str = ""


class SendEmailStep(StepBase):
    type: Literal["sendEmail"] = "sendEmail"
    smtp_host: str = ""
    smtp_port: int = 587
    to: str = ""
    subject: str = ""
    body: str = ""


class ReadEmailStep(StepBase):
    type: Literal["readEmail"] = "readEmail"
    imap_host: str = ""
    imap_port: int = 993
    mailbox: str = "INBOX"


class CloudStorageStep(StepBase):
    type: Literal["cloudStorage"] = "cloudStorage"
    provider: str = ""
    operation: str = ""
    bucket: str = ""
    key: str = ""


Step = Annotated[
    Union[
        NavigateStep,
        ClickStep,
        TypeStep,
        WaitStep,
        ScreenshotStep,
        ExtractStep,
        ExtractWithLogicStep,
        ScrollStep,
        SelectOptionStep,
        FileUploadStep,
        HoverStep,
        EvaluateStep,
        SetVariableStep,
        ModifyVariableStep,
        GetVariableStep,
        ApiCallStep,
        WebhookStep,
        AIOpenAIStep,
        AIAnthropicStep,
        AIOllamaStep,
        AIAgentStep,
        SlackSendMessageStep,
        SlackUpdateMessageStep,
        SlackDeleteMessageStep,
        SlackCreateChannelStep,
        SlackGetChannelStep,
        SlackListChannelsStep,
        SlackInviteUsersStep,
        SlackListMembersStep,
        SlackAddReactionStep,
        SlackGetUserStep,
        SlackListUsersStep,
        SlackUploadFileStep,
        SlackGetHistoryStep,
        SlackSetTopicStep,
        SlackArchiveChannelStep,
        SlackUnarchiveChannelStep,
        DiscordSendMessageStep,
        DiscordSendWebhookStep,
        DiscordReactMessageStep,
        DiscordGetMessageStep,
        DiscordListMessagesStep,
        DiscordDeleteMessageStep,
        TwitterCreateTweetStep,
        TwitterDeleteTweetStep,
        TwitterLikeTweetStep,
        TwitterRetweetStep,
        TwitterSearchTweetsStep,
        TwitterSendDMStep,
        TwitterSearchUserStep,
        FileSystemStep,
        SystemCommandStep,
        EnvironmentVariableStep,
        DataTransformStep,
        DatabaseQueryStep,
        SendEmailStep,
        ReadEmailStep,
        CloudStorageStep,
    ],
    Field(discriminator="type"),
]

_STEP_ADAPTER: TypeAdapter[Step] = TypeAdapter(Step)

STEP_MODELS = get_args(get_args(Step)[0])

STEP_TYPES: List[str] = sorted(model.model_fields["type"].default for model in STEP_MODELS)


def parse_step(data: Dict[str, Any]) -> Step:
    """
    Validate a raw step dict into its model.

    Raises:
        ValidationFailure: For unknown types or malformed parameters
    """
    if not isinstance(data, dict):
        raise ValidationFailure(f"Step must be an object, got {type(data).__name__}")
    try:
        return _STEP_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ValidationFailure(
            f"Invalid step: {e.errors()[0].get('msg', e)}",
            step_id=str(data.get("id")) if data.get("id") is not None else None,
            step_type=str(data.get("type")) if data.get("type") is not None else None,
            details={"errors": [err.get("msg") for err in e.errors()]},
        )


# ==================== Conditions ====================

class LoopConfig(WireModel):
    """
    Counter the engine maintains for a conditional used as a loop head.

    Attributes:
        start_index: Index written on the first visit
        increment: Added on every later visit
        max_iterations: Passes after which the condition is forced false
        index_variable: Variable the current index is stored under
    """
    start_index: int = 1
    increment: int = 1
    max_iterations: int = Field(default=100, ge=1)
    index_variable: str = "loopIndex"


ConditionType = Literal[
    "elementExists",
    "valueMatches",
    "variableExists",
    "variableEquals",
    "variableContains",
    "variableGreaterThan",
    "variableLessThan",
]

DOM_CONDITIONS = ("elementExists", "valueMatches")


class Condition(WireModel):
    """
    Payload of a conditional node.

    DOM kinds read the page through the backend; variable kinds read the
    VariableStore. ``operator`` is also accepted as ``condition`` on the wire.
    """
    condition_type: ConditionType = Field(
        validation_alias=AliasChoices(
            "conditionType", "condition_type", "browserConditionType", "variableConditionType"
        ),
    )
    selector: Optional[str] = None
    variable_name: Optional[str] = None
    expected_value: Optional[str] = None
    operator: ComparisonOp = Field(
        default="equals",
        validation_alias=AliasChoices("operator", "condition"),
    )
    transform_type: TransformType = "none"
    transform_chars: Optional[str] = None
    transform_pattern: Optional[str] = None
    transform_replace: Optional[str] = None
    parse_as_number: bool = False
    loop: Optional[LoopConfig] = None

    @field_validator("expected_value", mode="before")
    @classmethod
    def _coerce_expected(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @property
    def is_dom(self) -> bool:
        return self.condition_type in DOM_CONDITIONS
