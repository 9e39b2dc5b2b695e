"""
Example sentence generation

Asks Claude for one short, kid-friendly sentence per spelling word. Purely
additive: lists work fine without sentences, and a word the model skipped is
simply left out of the result.
"""

from typing import Dict, List, Optional
import json
import logging
import re
import time

import anthropic

from src.config.limits import MAX_SENTENCE_BATCH, SENTENCE_MAX_LENGTH
from src.models import clean_words
from src.services.errors import InvalidInputError, SentenceGenerationError

logger = logging.getLogger(__name__)

SENTENCE_PROMPT = """Write one short example sentence for each spelling word below.
The sentences are read aloud to children aged 5-10 during spelling practice, so:
- use simple, everyday words
- use the spelling word exactly as written
- keep each sentence under 15 words

Words:
{words}

Reply with only a JSON object mapping each word to its sentence."""


def parse_sentence_reply(text: str, words: List[str]) -> Dict[str, str]:
    """
    Pull {word: sentence} out of a model reply.

    Tolerates code fences and chatter around the JSON object; keeps only
    requested words with non-empty sentences.
    """
    cleaned = re.sub(r"```(?:json)?", "", text).strip()
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if not match:
        raise SentenceGenerationError("No JSON object in sentence reply")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise SentenceGenerationError(f"Unreadable sentence reply: {e}") from e
    if not isinstance(data, dict):
        raise SentenceGenerationError("Sentence reply is not an object")

    by_lower = {str(k).strip().lower(): v for k, v in data.items()}
    result = {}
    for word in words:
        sentence = data.get(word, by_lower.get(word.lower()))
        if isinstance(sentence, str) and sentence.strip():
            result[word] = sentence.strip()[:SENTENCE_MAX_LENGTH]
    return result


class SentenceGenerator:
    """Claude-backed example sentences for a small batch of words."""

    def __init__(self, api_key: Optional[str], model: str = "claude-3-haiku-20240307",
                 max_words: int = MAX_SENTENCE_BATCH, client=None, logger=None):
        """
        Args:
            api_key: Anthropic API key (unused when client is given)
            model: Model used for sentences
            max_words: Largest batch accepted in one call
            client: Optional pre-built AsyncAnthropic client
            logger: Optional SpellingLogger
        """
        self.model = model
        self.max_words = min(max_words, MAX_SENTENCE_BATCH)
        self.logger = logger
        self.client = client
        if self.client is None and api_key:
            self.client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def available(self) -> bool:
        return self.client is not None

    async def generate(self, words: List[str]) -> Dict[str, str]:
        """Map each word to an example sentence."""
        words = list(dict.fromkeys(clean_words(words)))
        if not words:
            return {}
        if len(words) > self.max_words:
            raise InvalidInputError(f"At most {self.max_words} words per request")
        if not self.client:
            raise SentenceGenerationError("Sentence generation is not configured")

        start_time = time.time()
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=1024,
                messages=[{
                    "role": "user",
                    "content": SENTENCE_PROMPT.format(words="\n".join(f"- {w}" for w in words)),
                }],
            )
        except anthropic.APIError as e:
            if self.logger:
                self.logger.api_call("anthropic", self.model, status="failed", latency=time.time() - start_time)
            raise SentenceGenerationError(f"Sentence request failed: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        sentences = parse_sentence_reply(text, words)

        if self.logger:
            self.logger.api_call(
                "anthropic", self.model, latency=time.time() - start_time,
                detail=f"{len(sentences)}/{len(words)} sentences"
            )
        logger.debug(f"Generated {len(sentences)} sentences for {len(words)} words")
        return sentences
