"""
Storyreel Story Chat

Chat-assisted story drafting. The conversation lives on the project state;
the finished story becomes the script that the shots stage reads.
"""

from typing import Optional

from storyreel.core.config import PipelineConfig, get_config
from storyreel.core.constants import StageTag
from storyreel.core.exceptions import PipelineStageError, StoryreelError
from storyreel.core.logging_config import get_logger
from storyreel.llm import LLMCaller
from storyreel.pipelines.prompts import StagePromptLibrary as P
from storyreel.project.models import ChatMessage
from storyreel.project.state import ProjectState
from storyreel.utils.text import clean_markdown

logger = get_logger("pipelines.story_chat")


def chat_transcript(state: ProjectState) -> str:
    """The conversation as "User: ..." / "Assistant: ..." paragraphs."""
    return "\n\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}"
        for m in state.chat_messages
    )


async def send_chat_message(
    state: ProjectState,
    llm: LLMCaller,
    text: str,
    config: Optional[PipelineConfig] = None,
) -> Optional[ChatMessage]:
    """
    Send one user turn and append the assistant reply.

    A failed call appends an apology turn instead of raising, so the chat
    stays usable. Blank input is ignored.
    """
    text = (text or "").strip()
    if not text:
        return None

    config = config or get_config()
    user_message = ChatMessage(role="user", content=text)
    history = [m.to_dict() for m in state.chat_messages] + [user_message.to_dict()]
    state.update_chat_messages(state.chat_messages + [user_message])

    try:
        response = await llm.call(
            system=P.STORY_CHAT_SYSTEM,
            messages=history,
            max_tokens=config.tokens_for(StageTag.STORY_CHAT),
            stage=StageTag.STORY_CHAT,
            model=config.model,
        )
        reply = ChatMessage(role="assistant", content=response.text or P.STORY_CHAT_EMPTY_REPLY)
    except StoryreelError as e:
        logger.warning(f"Story chat call failed: {e.message}")
        reply = ChatMessage(role="assistant", content=P.STORY_CHAT_ERROR_REPLY)

    state.update_chat_messages(state.chat_messages + [reply])
    return reply


async def extract_final_story(
    state: ProjectState,
    llm: LLMCaller,
    config: Optional[PipelineConfig] = None,
) -> Optional[str]:
    """Ask for the complete story and store it as the script."""
    if not state.chat_messages:
        return None

    config = config or get_config()
    try:
        response = await llm.call(
            system=P.STORY_EXTRACT_SYSTEM,
            messages=[{
                "role": "user",
                "content": P.render(P.STORY_EXTRACT_USER, conversation=chat_transcript(state)),
            }],
            max_tokens=config.tokens_for(StageTag.STORY_EXTRACT),
            stage=StageTag.STORY_EXTRACT,
            model=config.model,
        )
    except StoryreelError as e:
        state.set_error("Failed to extract story.")
        raise PipelineStageError(StageTag.STORY_EXTRACT, e.message) from e

    script = clean_markdown(response.text)
    state.update_script_input(script)
    logger.info(f"Extracted story ({len(script.split())} words)")
    return script


def use_last_assistant_message(state: ProjectState) -> Optional[str]:
    """Use the latest assistant turn as the script, markdown removed."""
    for message in reversed(state.chat_messages):
        if message.role == "assistant":
            script = clean_markdown(message.content)
            state.update_script_input(script)
            return script
    return None
