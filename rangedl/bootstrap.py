from pathlib import Path
from dataclasses import asdict
from typing import Callable, Optional

from rangedl.app.commands import CommandBus, StartTransfer, ShowConfig, SetConfig
from rangedl.app.services import TransferService
from rangedl.core.config import ConfigRepository, TransferConfig, load_config
from rangedl.core.errors import ConfigurationError
from rangedl.core.interfaces import NullProgress, RangeTransport
from rangedl.infra.network.range_client import SocketRangeTransport
from rangedl.infra.storage.file_writer import LocalFileWriter
from rangedl.interface.progress import ConsoleProgress


def get_config_dir() -> Path:
    """Where persisted settings live (~/.rangedl)."""
    return Path.home() / ".rangedl"


def create_container(config_dir: Optional[Path] = None,
                     transport_factory: Optional[Callable[[TransferConfig], RangeTransport]] = None,
                     environ: Optional[dict] = None) -> dict:
    # 1. Config
    config_repo = ConfigRepository(config_dir or get_config_dir())

    # 2. Infra
    service = TransferService(transport_factory or SocketRangeTransport.from_config)
    file_writer = LocalFileWriter()

    # 3. Handlers
    def handle_start_transfer(cmd: StartTransfer):
        config = load_config(config_repo, environ=environ, **cmd.overrides())
        progress = ConsoleProgress() if cmd.show_progress else NullProgress()
        return service.transfer(config, progress)

    def handle_show_config(cmd: ShowConfig):
        effective = asdict(load_config(config_repo, environ=environ))
        if cmd.key is None:
            return effective
        if cmd.key not in effective:
            raise ConfigurationError(f"Unknown config key: {cmd.key}")
        return {cmd.key: effective[cmd.key]}

    def handle_set_config(cmd: SetConfig):
        previous = config_repo.get(cmd.key)
        if cmd.value is None:
            config_repo.unset(cmd.key)
        else:
            config_repo.set(cmd.key, cmd.value)
        # Reject settings that would make every later run fail
        try:
            load_config(config_repo, environ={})
        except ConfigurationError:
            if previous is None:
                config_repo.unset(cmd.key)
            else:
                config_repo.set(cmd.key, previous)
            raise
        return config_repo.get(cmd.key)

    bus = CommandBus()
    bus.register(StartTransfer, handle_start_transfer)
    bus.register(ShowConfig, handle_show_config)
    bus.register(SetConfig, handle_set_config)

    return {
        "bus": bus,
        "service": service,
        "config_repo": config_repo,
        "file_writer": file_writer,
    }
