"""Base repository shared by the timer's Supabase tables"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from supabase import Client

T = TypeVar('T', bound=BaseModel)
CreateT = TypeVar('CreateT', bound=BaseModel)
UpdateT = TypeVar('UpdateT', bound=BaseModel)


class BaseRepository(Generic[T, CreateT, UpdateT]):
    """
    Row <-> pydantic model mapping plus the writes every timer table needs.

    Methods are async so callers await them like any other I/O, even though
    the Supabase client underneath is synchronous.
    """

    def __init__(self, client: Client, table_name: str, model_class: Type[T]):
        self._client = client
        self._table_name = table_name
        self._model_class = model_class

    def _table(self):
        return self._client.table(self._table_name)

    def _to_model(self, row: Dict[str, Any]) -> T:
        return self._model_class(**row)

    def _to_models(self, rows: List[Dict[str, Any]]) -> List[T]:
        return [self._to_model(row) for row in rows]

    async def find_by_id(self, id: str) -> Optional[T]:
        """Row with the given id, or None"""
        rows = self._table().select("*").eq("id", id).limit(1).execute().data
        return self._to_model(rows[0]) if rows else None

    async def create(self, data: CreateT) -> T:
        """
        Insert one row and return it as stored.

        Raises:
            ValueError: If Supabase returns no row
        """
        payload = data.model_dump(exclude_unset=True, mode='json')
        rows = self._table().insert(payload).execute().data
        if not rows:
            raise ValueError(f"Insert into {self._table_name} returned no row")
        return self._to_model(rows[0])

    async def update(self, id: str, data: UpdateT) -> Optional[T]:
        """
        Write the fields set on data to one row.

        Returns:
            The updated row, or None if no row has that id
        """
        payload = data.model_dump(exclude_unset=True, mode='json')
        if not payload:
            return await self.find_by_id(id)

        rows = self._table().update(payload).eq("id", id).execute().data
        return self._to_model(rows[0]) if rows else None
