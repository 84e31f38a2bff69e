"""Agent loop - runs a message through retrieval, the model and reflection."""

import logging
import uuid

from sparkskills.providers import LLMProvider
from sparkskills.skills.diagnostics import CaptureDirection, MessageCapture
from sparkskills.skills.injection import augment_message
from sparkskills.skills.reflection import ReflectionPipeline
from sparkskills.skills.retrieval import SkillRetriever
from sparkskills.skills.store import SkillStore

logger = logging.getLogger(__name__)


class AgentLoop:
    """
    The agent loop ties the skill system to a completion provider.

    For each message it:
    1. Retrieves skills and records them in a conversation context
    2. Appends the rendered skills to the message
    3. Calls the LLM
    4. Records the response and reflects on the conversation
    """

    def __init__(
        self,
        store: SkillStore,
        provider: LLMProvider,
        model: str | None = None,
        retriever: SkillRetriever | None = None,
        pipeline: ReflectionPipeline | None = None,
        capture: MessageCapture | None = None,
        skills_enabled: bool = True,
        reflect: bool = True,
    ):
        self.store = store
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.retriever = retriever if retriever is not None else SkillRetriever(store)
        self.pipeline = pipeline if pipeline is not None else ReflectionPipeline(store, provider)
        self.capture = capture if capture is not None else MessageCapture()
        self.skills_enabled = skills_enabled
        self.reflect = reflect

    async def process_direct(self, content: str, conversation_id: str | None = None) -> str:
        """
        Process a single message.

        Args:
            content: The user's message.
            conversation_id: Conversation identifier; generated if omitted.

        Returns:
            The model's reply.
        """
        conversation_id = conversation_id or uuid.uuid4().hex
        outbound = content

        if self.skills_enabled:
            retrieval = await self.retriever.retrieve_skills_for_message(content)
            await self.pipeline.store_retrieved_skills(conversation_id, retrieval.skill_ids)
            await self.pipeline.update_conversation_message(conversation_id, content)
            outbound = augment_message(content, retrieval.formatted)
            logger.info(
                "Injected %d skills into conversation %s",
                len(retrieval.skill_ids), conversation_id,
            )

        self.capture.capture(CaptureDirection.TO_MODEL, outbound)
        response = await self.provider.chat(
            messages=[{"role": "user", "content": outbound}],
            model=self.model,
        )
        reply = response.content or ""
        self.capture.capture(CaptureDirection.FROM_MODEL, reply)

        if response.is_error:
            logger.error("Provider error for conversation %s: %s", conversation_id, reply)
            return reply

        if self.skills_enabled:
            await self.pipeline.update_conversation_response(conversation_id, reply)
            if self.reflect:
                # Reflection failures never affect the reply; the context stays for a retry.
                try:
                    await self.pipeline.trigger_reflection(conversation_id)
                except Exception as e:
                    logger.error("Reflection error (non-fatal): %s", e)

        return reply

    async def close(self) -> None:
        """Wait for outstanding background retrieval-count updates."""
        await self.retriever.wait_for_background()
