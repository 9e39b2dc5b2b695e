"""Word lists shared by a family."""

from typing import Any, Dict, List, Optional

from src.models import WordList
from src.services import paths
from src.services.clock import Clock
from src.services.store import DocumentStore
from src.services.validation_service import validate_name, validate_sentences, validate_words


class WordListStore:
    """Word lists of one family, newest first."""

    def __init__(self, store: DocumentStore, family_id: str, clock: Optional[Clock] = None):
        self.store = store
        self.family_id = family_id
        self.clock = clock or Clock()

    async def load(self) -> List[WordList]:
        docs = await self.store.list(paths.word_lists(self.family_id))
        lists = [WordList.from_record(key, data) for key, data in docs.items()]
        return sorted(lists, key=lambda wl: wl.created_at.timestamp(), reverse=True)

    async def get(self, list_id: str) -> Optional[WordList]:
        data = await self.store.get(paths.word_list(self.family_id, list_id))
        return WordList.from_record(list_id, data) if data else None

    async def create(self, name: str, words: List[str], sentences: Optional[Dict[str, str]] = None) -> WordList:
        words = validate_words(words)
        word_list = WordList(
            name=validate_name(name, "List name"),
            words=words,
            sentences=validate_sentences(sentences, words),
            created_at=self.clock.now(),
        )
        key = await self.store.push(paths.word_lists(self.family_id), word_list.to_record())
        return word_list.model_copy(update={"id": key})

    async def update(self, list_id: str, updates: Dict[str, Any]) -> Optional[WordList]:
        """
        Change name, words and/or sentences. Sentences for words no longer on
        the list are dropped. Returns None if the list does not exist.
        """
        current = await self.get(list_id)
        if not current:
            return None

        words = validate_words(updates["words"]) if updates.get("words") is not None else current.words
        sentences = updates["sentences"] if updates.get("sentences") is not None else current.sentences
        fields = {
            "name": validate_name(updates["name"], "List name") if updates.get("name") is not None else current.name,
            "words": words,
            "sentences": validate_sentences(sentences, words),
        }
        await self.store.update(paths.word_list(self.family_id, list_id), fields)
        return current.model_copy(update=fields)

    async def delete(self, list_id: str) -> None:
        await self.store.delete(paths.word_list(self.family_id, list_id))
