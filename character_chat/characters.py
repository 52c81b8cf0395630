"""Character CRUD and visibility filtering over the `characters` collection.

Visibility rule: a character is visible to a requester when it is public or
the requester created it. Hidden characters are indistinguishable from
missing ones on every read path (CharacterNotFound / omitted from lists).
Mutations require ownership: a visible character owned by someone else
raises AccessDenied and is left untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from character_chat.errors import AccessDenied, CharacterNotFound
from character_chat.models import Character, utcnow
from character_chat.store import RecordStore

logger = logging.getLogger(__name__)

COLLECTION = "characters"

# Owner-editable fields, keyed by Python attribute name.
MUTABLE_FIELDS = ("name", "description", "system_prompt", "is_public", "avatar")


class CharacterRepository:
    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def _load(self) -> list[Character]:
        return [Character.model_validate(c) for c in self._store.load_all(COLLECTION)]

    def _save(self, characters: list[Character]) -> None:
        self._store.save_all(COLLECTION, [c.to_json() for c in characters])

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    def create(
        self,
        creator_id: str,
        name: str,
        description: str,
        system_prompt: str,
        is_public: bool = True,
        avatar: str = "",
    ) -> Character:
        character = Character(
            name=name,
            description=description,
            system_prompt=system_prompt,
            creator_id=creator_id,
            is_public=is_public,
            avatar=avatar or "",
        )
        characters = self._load()
        characters.append(character)
        self._save(characters)
        logger.info("created character id=%s creator=%s public=%s",
                    character.id, creator_id, is_public)
        return character

    def get(self, character_id: str, requester_id: str | None = None) -> Character:
        """Fetch a character the requester is allowed to see."""
        for character in self._load():
            if character.id == character_id:
                if character.visible_to(requester_id):
                    return character
                break
        raise CharacterNotFound()

    def list_visible(
        self,
        requester_id: str | None = None,
        creator_id: str | None = None,
        include_own: bool = False,
    ) -> list[Character]:
        """List visible characters, newest first.

        creator_id   — only that creator's characters.
        include_own  — public characters plus the requester's private ones.
        default      — public characters only.
        """
        result = []
        for character in self._load():
            if not character.visible_to(requester_id):
                continue
            if creator_id is not None:
                if character.creator_id != creator_id:
                    continue
            elif not include_own and not character.is_public:
                continue
            result.append(character)
        result.sort(key=lambda c: c.created_at)
        result.reverse()
        return result

    def search(self, query: str, requester_id: str | None = None) -> list[Character]:
        """Case-insensitive match on name or description among visible characters."""
        needle = query.strip().lower()
        return [
            c for c in self.list_visible(requester_id=requester_id, include_own=True)
            if needle in c.name.lower() or needle in c.description.lower()
        ]

    def popular(self, limit: int = 10) -> list[Character]:
        public = self.list_visible()
        public.sort(key=lambda c: c.chat_count, reverse=True)
        return public[:limit]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _find_owned(
        self, characters: list[Character], character_id: str, requester_id: str
    ) -> int:
        for i, character in enumerate(characters):
            if character.id == character_id:
                if not character.visible_to(requester_id):
                    raise CharacterNotFound()
                if character.creator_id != requester_id:
                    raise AccessDenied("Not authorized to modify this character")
                return i
        raise CharacterNotFound()

    def update(self, character_id: str, requester_id: str, fields: dict[str, Any]) -> Character:
        """Merge the given fields into the character. Unspecified fields are kept."""
        characters = self._load()
        index = self._find_owned(characters, character_id, requester_id)
        changes = {k: v for k, v in fields.items() if k in MUTABLE_FIELDS and v is not None}
        updated = characters[index].model_copy(update={**changes, "updated_at": utcnow()})
        characters[index] = updated
        self._save(characters)
        return updated

    def delete(self, character_id: str, requester_id: str) -> None:
        characters = self._load()
        index = self._find_owned(characters, character_id, requester_id)
        characters.pop(index)
        self._save(characters)
        logger.info("deleted character id=%s", character_id)

    def increment_chat_count(self, character_id: str) -> None:
        characters = self._load()
        for character in characters:
            if character.id == character_id:
                character.chat_count += 1
                self._save(characters)
                return
