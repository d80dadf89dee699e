"""Duet -- the single factory tying schema, state, and LLM bridge together.

Users interact with ``create_duet()`` and the returned :class:`Duet`:
``d.set()``/``d.data`` for the human side, ``d.llm`` for the agent side.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from duet.bridge import LLMBridge
from duet.models.config import DuetOptions
from duet.schema import DuetSchema
from duet.store import Listener, SharedState

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from duet.fields import FieldDef

logger = logging.getLogger(__name__)


class Duet:
    """A validated shared state with an LLM bridge attached.

    Example::

        trip = create_duet("TripBudget", {
            "destination": field(StringType(min_length=1), "Destination", "Tokyo"),
            "budget": field(NumberType(minimum=0, maximum=100000), "Budget", 5000),
        })

        trip.set("destination", "Paris")            # human edit
        trip.llm.apply_json('[{"op":"replace","path":"/budget","value":8000}]')
        trip.data["budget"]                          # 8000
    """

    def __init__(
        self,
        schema: DuetSchema,
        state: SharedState,
        llm: LLMBridge,
        *,
        engine: Engine | None = None,
        session: Session | None = None,
    ) -> None:
        self.schema = schema
        self.state = state
        self.llm = llm
        self._engine = engine
        self._session = session
        self._closed = False

    def __repr__(self) -> str:
        return f"Duet({self.schema.name!r}, fields={self.schema.field_ids()})"

    def __enter__(self) -> Duet:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def data(self) -> Mapping[str, Any]:
        return self.state.current()

    def set(self, field_name: str, value: Any) -> bool:
        return self.state.set(field_name, value)

    def set_many(self, updates: Mapping[str, Any]) -> bool:
        return self.state.set_many(updates)

    def reset(self) -> None:
        self.state.reset()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.state.subscribe(listener)

    def close(self) -> None:
        """Release the persistence session and engine, if any."""
        if self._closed:
            return
        self._closed = True
        if self._session is not None:
            self._session.close()
        if self._engine is not None:
            self._engine.dispose()


def create_duet(
    name: str,
    fields: Mapping[str, FieldDef],
    options: DuetOptions | None = None,
    **kwargs: Any,
) -> Duet:
    """Create a Duet: schema + shared state + LLM bridge.

    Args:
        name: Schema name, shown in context text and the tool name.
        fields: Ordered mapping of field name to :func:`duet.field` definition.
        options: Configuration. Keyword arguments are accepted as a
            shorthand and override fields of *options*.

    Returns:
        A ready-to-use :class:`Duet`.

    Raises:
        SchemaError: If the schema or a default value is invalid.
    """
    if options is None:
        options = DuetOptions(**kwargs)
    elif kwargs:
        options = options.model_copy(update=kwargs)

    schema = DuetSchema(name, fields)

    engine = session = repository = None
    if options.persist:
        from duet.storage.engine import create_duet_engine, init_db, open_session
        from duet.storage.sqlite import SqliteSnapshotRepository

        engine = create_duet_engine(options.db_path, url=options.db_url)
        init_db(engine)
        session = open_session(engine)
        repository = SqliteSnapshotRepository(session)
        logger.debug("Persisting %s under key %r", name, options.persist)

    state = SharedState(schema, repository=repository, persist_key=options.persist)
    llm = LLMBridge(
        schema,
        state,
        transform_context=options.transform_context,
        transform_function_schema=options.transform_function_schema,
        default_source=options.default_source,
    )
    return Duet(schema, state, llm, engine=engine, session=session)
