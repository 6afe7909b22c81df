from dataclasses import dataclass
from typing import Protocol, Type, Dict, Any, TypeVar, Optional

# --- Commands ---
@dataclass
class Command:
    pass

@dataclass
class StartTransfer(Command):
    host: Optional[str] = None
    port: Optional[int] = None
    chunk_size: Optional[int] = None  # bytes
    concurrency: Optional[int] = None
    max_chunk_retries: Optional[int] = None
    max_batch_retries: Optional[int] = None
    expected_checksum: Optional[str] = None
    show_progress: bool = True

    def overrides(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "chunk_size": self.chunk_size,
            "concurrency": self.concurrency,
            "max_chunk_retries": self.max_chunk_retries,
            "max_batch_retries": self.max_batch_retries,
            "expected_checksum": self.expected_checksum,
        }

@dataclass
class ShowConfig(Command):
    key: Optional[str] = None

@dataclass
class SetConfig(Command):
    key: str
    value: Optional[str] = None  # None removes the saved value


# --- Bus ---
C = TypeVar("C", bound=Command)

class CommandHandler(Protocol[C]):
    def __call__(self, command: C) -> Any:
        ...

class CommandBus:
    def __init__(self):
        self._handlers: Dict[Type[Command], CommandHandler] = {}

    def register(self, command_type: Type[C], handler: CommandHandler[C]):
        self._handlers[command_type] = handler

    def handle(self, command: Command) -> Any:
        handler = self._handlers.get(type(command))
        if not handler:
            raise ValueError(f"No handler registered for {type(command)}")
        return handler(command)
