# messaging/infrastructure/uow.py

from typing import Dict, Any, List, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from messaging.domain.exceptions import TransientIOError


class UoWModel:
    def __init__(self, model: Any, uow: "UnitOfWork"):
        self.__dict__["_model"] = model
        self.__dict__["_uow"] = uow

    def __getattr__(self, key):
        return getattr(self._model, key)

    def __setattr__(self, key, value):
        setattr(self._model, key, value)
        # new models are inserted as a whole, only existing ones become dirty
        if id(self._model) not in self._uow.new:
            self._uow.register_dirty(self._model)


class UnitOfWork:
    """Collects the changes of one business operation and commits them together.

    Inserts, updates, bulk SQL statements and deletes are applied inside a single
    database transaction: either all of them become visible or none does.
    Relative counter updates (``x = x + 1``) are registered as statements so
    concurrent writers never overwrite each other's increments.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.dirty: Dict[int, Any] = {}
        self.new: Dict[int, Any] = {}
        self.deleted: Dict[int, Any] = {}
        self.statements: List[Executable] = []
        self.mappers: Dict[Type, Any] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            await self.rollback()
        else:
            await self.commit()

    def register_dirty(self, model: Any) -> None:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        if model_id not in self.new:
            self.dirty[model_id] = model

    def register_deleted(self, model: Any) -> None:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        if model_id in self.new:
            # If the model is new, just delete it and go back
            self.new.pop(model_id)
            return
        elif model_id in self.dirty:
            # If model was supposed to be updated, remove it from dirty
            self.dirty.pop(model_id)

        self.deleted[model_id] = model

    def register_new(self, model: Any) -> UoWModel:
        if isinstance(model, UoWModel):
            model = model._model
        model_id = id(model)
        self.new[model_id] = model
        return UoWModel(model, self)

    def register_statement(self, statement: Executable) -> None:
        self.statements.append(statement)

    @property
    def has_changes(self) -> bool:
        return bool(self.new or self.dirty or self.deleted or self.statements)

    async def commit(self) -> None:
        try:
            for model in self.new.values():
                await self.mappers[type(model)].insert(model)
            for model in self.dirty.values():
                await self.mappers[type(model)].update(model)
            for statement in self.statements:
                await self.session.execute(
                    statement, execution_options={"synchronize_session": False}
                )
            for model in self.deleted.values():
                await self.mappers[type(model)].delete(model)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise TransientIOError("The write was rolled back", reason=str(e)) from e
        finally:
            self.clear()

    async def rollback(self) -> None:
        self.clear()
        await self.session.rollback()

    def clear(self) -> None:
        self.new.clear()
        self.dirty.clear()
        self.deleted.clear()
        self.statements.clear()
