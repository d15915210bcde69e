from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

from xhrmock.scheduler import Scheduler, TaskQueue

if TYPE_CHECKING:
    from xhrmock.request.mock_request import MockXhrRequest
    from xhrmock.xhr import MockXhr

OnCreateCallback = Callable[['MockXhr'], None]
OnSendCallback = Callable[['MockXhrRequest', 'MockXhr'], None]


@dataclass
class XhrConfig:
    """
    Settings shared by every MockXhr created with this config.

    Configs form a chain through ``parent``: hooks of every config in the chain
    apply (root first) and the timeout attribute only has an effect when it is
    enabled on all of them. A config without a scheduler inherits its parent's,
    or gets a new TaskQueue.
    """

    timeout_enabled: bool = True
    on_create: Optional[OnCreateCallback] = None
    on_send: Optional[OnSendCallback] = None
    scheduler: Optional[Scheduler] = None
    parent: Optional[XhrConfig] = field(default=None, repr=False)

    def __post_init__(self):
        self.get_scheduler()

    def get_scheduler(self) -> Scheduler:
        """Return the task queue, inheriting the parent's or creating one when unset."""
        if self.scheduler is None:
            self.scheduler = self.parent.get_scheduler() if self.parent else TaskQueue()
        return self.scheduler

    def chain(self) -> list[XhrConfig]:
        """Return the configs from the root of the chain down to this one."""
        configs: list[XhrConfig] = []
        config: Optional[XhrConfig] = self
        while config is not None:
            configs.append(config)
            config = config.parent
        configs.reverse()
        return configs

    def timeouts_enabled(self) -> bool:
        return all(config.timeout_enabled for config in self.chain())

    def on_create_hooks(self) -> list[OnCreateCallback]:
        return [config.on_create for config in self.chain() if config.on_create is not None]

    def on_send_hooks(self) -> list[OnSendCallback]:
        return [config.on_send for config in self.chain() if config.on_send is not None]
