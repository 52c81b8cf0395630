"""Character CRUD endpoints.

Reads apply the visibility rule (hidden characters are 404 / omitted);
mutations additionally require the caller to be the creator (403).
"""

from fastapi import APIRouter, Query

from backend.deps import Characters, CurrentUser, OptionalUser
from .models import CreateCharacter, UpdateCharacter

router = APIRouter(prefix="/characters")


@router.get("")
async def list_characters(
    characters: Characters,
    user: OptionalUser,
    include_own: bool = Query(False, alias="all"),
    creator: str | None = None,
    search: str | None = None,
):
    """List characters visible to the caller.

    `creator` filters by creator, `all=true` adds the caller's private
    characters, `search` matches name/description. Default: public only.
    """
    requester = user.user_id if user else None
    if search:
        found = characters.search(search, requester_id=requester)
        if creator:
            found = [c for c in found if c.creator_id == creator]
    else:
        found = characters.list_visible(requester_id=requester, creator_id=creator, include_own=include_own)
    return [c.to_json() for c in found]


@router.get("/popular")
async def popular_characters(characters: Characters, limit: int = 10):
    """Public characters with the most chats."""
    limit = max(1, min(100, limit))
    return [c.to_json() for c in characters.popular(limit)]


@router.post("", status_code=201)
async def create_character(body: CreateCharacter, characters: Characters, user: CurrentUser):
    """Create a character owned by the caller."""
    character = characters.create(
        creator_id=user.user_id,
        name=body.name,
        description=body.description,
        system_prompt=body.system_prompt,
        is_public=body.is_public,
        avatar=body.avatar or "",
    )
    return character.to_json()


@router.get("/{character_id}")
async def get_character(character_id: str, characters: Characters, user: OptionalUser):
    """Get a single character."""
    requester = user.user_id if user else None
    return characters.get(character_id, requester_id=requester).to_json()


@router.put("/{character_id}")
async def update_character(
    character_id: str, body: UpdateCharacter, characters: Characters, user: CurrentUser,
):
    """Update name, description, system prompt, visibility or avatar."""
    fields = body.model_dump(exclude_unset=True)
    return characters.update(character_id, user.user_id, fields).to_json()


@router.delete("/{character_id}")
async def delete_character(character_id: str, characters: Characters, user: CurrentUser):
    """Delete a character owned by the caller."""
    characters.delete(character_id, user.user_id)
    return {"message": "Character deleted successfully"}
