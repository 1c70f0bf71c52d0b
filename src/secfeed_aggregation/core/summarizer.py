"""
AI digest summarizer.

Sends the newest items to an OpenAI-compatible chat endpoint (DeepSeek by
default) and post-processes the answer into Telegram-safe HTML. The model
never sees real URLs: every item carries a ``[[LINK_n]]`` placeholder
that is swapped for the item's own link after the response comes back.
"""

import re
from dataclasses import dataclass
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from secfeed_aggregation.config import get_config
from secfeed_aggregation.exceptions import SummarizerError
from secfeed_aggregation.logger import get_logger
from secfeed_aggregation.models.item import SecurityItem
from secfeed_aggregation.utils.date_utils import format_pub_date

logger = get_logger(__name__)

LINK_UNAVAILABLE = "链接不可用"
PREVIEW_LENGTH = 150

SYSTEM_PROMPT = (
    "你是一个专业的 Web3 安全资讯分析师，擅长识别真正的区块链攻击事件，"
    "并总结和格式化安全相关的新闻和漏洞信息。只处理和返回区块链攻击相关的事件。"
)

_LEFTOVER_TOKEN_RE = re.compile(r"\[\[LINK_[^\]]*\]\]")
_EXAMPLE_URL_RE = re.compile(r"https?://(?:www\.)?example\.com/?\S*", re.IGNORECASE)
_EXAMPLE_HOST_RE = re.compile(r"(?<![\w.-])(?:www\.)?example\.com\b", re.IGNORECASE)
_HR_RE = re.compile(r"<hr\s*/?>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_UNSUPPORTED_TAG_RE = re.compile(
    r"</?(div|span|p|section|article|header|footer|nav|main"
    r"|h[1-6]|ul|ol|li|table|tr|td|th|thead|tbody)\b[^>]*>",
    re.IGNORECASE,
)


@dataclass
class SummaryResult:
    """Result of summarization."""

    success: bool
    summary: Optional[str] = None
    method: str = "ai"
    error: Optional[str] = None

    def __post_init__(self):
        if self.success and self.error:
            raise ValueError("Successful summary cannot have an error")

    def __repr__(self) -> str:
        return f"<SummaryResult(success={self.success}, method={self.method})>"


def link_token(index: int) -> str:
    return f"[[LINK_{index}]]"


def resolve_link_tokens(text: str, items: list[SecurityItem]) -> str:
    """Replace ``[[LINK_n]]`` with the n-th item's link.

    http(s) links become anchors; anything else, and any token without a
    matching item, becomes the "link unavailable" marker.
    """
    for index, item in enumerate(items):
        token = link_token(index)
        if token not in text:
            continue
        link = item.link or ""
        if link.startswith(("http://", "https://")):
            safe_url = link.replace('"', "%22")
            replacement = f'<a href="{safe_url}">{safe_url}</a>'
        else:
            replacement = LINK_UNAVAILABLE
        text = text.replace(token, replacement)

    return _LEFTOVER_TOKEN_RE.sub(LINK_UNAVAILABLE, text)


def sanitize_html(text: str) -> str:
    """Strip placeholder links and tags the messaging API rejects."""
    text = _EXAMPLE_URL_RE.sub(LINK_UNAVAILABLE, text)
    text = _EXAMPLE_HOST_RE.sub(LINK_UNAVAILABLE, text)
    text = _HR_RE.sub("\n" + "─" * 20 + "\n", text)
    text = _BR_RE.sub("\n", text)
    return _UNSUPPORTED_TAG_RE.sub("", text)


def build_prompt(items: list[SecurityItem], time_range: str, total: int) -> str:
    """Build the user prompt for a batch of items.

    Args:
        items: Items shown to the model (already truncated)
        time_range: Human-readable window label
        total: Number of items in the whole batch

    Returns:
        Prompt text
    """
    entries = []
    for index, item in enumerate(items):
        date = format_pub_date(item.pub_date, fmt="%m/%d %H:%M") or "未知时间"
        content = item.content_snippet or item.content or ""
        if len(content) > PREVIEW_LENGTH:
            content = content[:PREVIEW_LENGTH] + "..."
        entries.append(
            f"{index + 1}. [{item.category.value}] {item.title} {link_token(index)} ({date})\n"
            f"   内容: {content or '无内容'}"
        )

    items_summary = "\n\n".join(entries)

    return f"""你是一个专业的 Web3 安全分析师。请对以下安全资讯进行过滤、总结和优化，生成一份清晰、专业的 Telegram 消息。

**重要：过滤要求**
请只处理和返回真正的区块链攻击相关事件，忽略普通的漏洞披露、代码审计报告、理论研究、项目更新以及一般性的安全建议。

**优化要求**：
1. 使用中文回复
2. 按照重要性和紧急程度排序
3. 突出关键信息（攻击类型、受影响项目、损失金额等）
4. 使用 emoji 增强可读性
5. 格式化为 Telegram HTML 格式（只支持 <b>、<strong>、<i>、<em>、<u>、<ins>、<s>、<strike>、<del>、<a>、<code>、<pre>）
6. 禁止使用 <hr>、<br>、<div>、<span>、<p>、<h1>-<h6>、<ul>、<ol>、<li> 等标签，如需分隔请使用换行符或分隔线字符（─）
7. 每条资讯包含标题、时间、分类、链接。请在对应条目位置原样保留占位符 [[LINK_n]]（例如 [[LINK_0]]），程序会在发送前替换为原始链接，不要自行附加链接清单
8. 如果资讯数量较多，进行分组展示
9. 总长度控制在 3500 字符以内

时间范围：{time_range}
资讯数量：{total} 条

原始数据：
{items_summary}

请直接返回优化后的 Telegram 消息内容，不要包含其他说明："""


class AISummarizer:
    """Digest summarizer backed by an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_items: Optional[int] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """Initialize the AI summarizer.

        Args:
            api_key: API key for the endpoint
            base_url: OpenAI-compatible base URL
            model: Chat model name
            max_items: Items passed to the model
            max_tokens: Maximum tokens in the digest
            temperature: Sampling temperature
            timeout_seconds: Request timeout
            client: Preconfigured client (overrides api_key/base_url)
        """
        config = get_config().summarizer

        self.model = model or config.model
        self.max_items = max_items or config.max_items
        self.max_tokens = max_tokens or config.max_tokens
        self.temperature = temperature if temperature is not None else config.temperature

        if client is not None:
            self._client = client
        else:
            api_key = api_key or config.api_key
            if not api_key:
                logger.warning("Summarizer API key not set, AI summarization unavailable")
                self._client = None
            else:
                self._client = AsyncOpenAI(
                    api_key=api_key,
                    base_url=base_url or config.base_url,
                    timeout=timeout_seconds or config.timeout_seconds,
                )
                logger.info(f"AI Summarizer initialized with model: {self.model}")

    @property
    def available(self) -> bool:
        return self._client is not None

    async def summarize(self, items: list[SecurityItem], time_range: str) -> SummaryResult:
        """Generate a digest for ``items``.

        Args:
            items: Items to summarize (only the first ``max_items`` are sent)
            time_range: Human-readable window label

        Returns:
            SummaryResult; ``success=False`` tells the caller to fall back
        """
        if not self._client:
            return SummaryResult(
                success=False, method="ai", error="AI client not initialized (check API key)"
            )

        if not items:
            return SummaryResult(success=False, method="ai", error="No items to summarize")

        shown = items[: self.max_items]

        try:
            content = await self._complete(build_prompt(shown, time_range, len(items)))
        except SummarizerError as e:
            logger.error(f"AI summarization failed: {e}")
            return SummaryResult(success=False, method="ai", error=str(e))

        # placeholder hosts are stripped before real links go in
        summary = resolve_link_tokens(sanitize_html(content), shown)
        logger.info("AI digest generated")

        return SummaryResult(success=True, summary=summary, method="ai")

    async def _complete(self, prompt: str) -> str:
        """Run one chat completion and return its stripped text.

        Raises:
            SummarizerError: On SDK errors or an empty answer
        """
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            raise SummarizerError(f"AI error: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise SummarizerError("AI returned empty summary")

        content = response.choices[0].message.content.strip()
        if not content:
            raise SummarizerError("AI returned empty summary")
        return content


def create_summarizer() -> Optional[AISummarizer]:
    """Create the configured summarizer, or None when summarization is off.

    Returns:
        AISummarizer instance or None
    """
    config = get_config().summarizer
    if not config.enabled or config.method != "ai":
        return None
    return AISummarizer()
