"""
Device abstraction for kernel launches.

An Architecture is an explicit value passed to every operation that launches
work; there is no ambient "current device". Launches return an Event and
`wait` is the barrier that joins them. On GPU backends Taichi kernels are
issued asynchronously, so two launches before a `wait` run independently of
the host.

Usage:
    arch = CPU
    west = arch.launch(fill_west, c, ...)
    east = arch.launch(fill_east, c, ...)
    arch.wait(west, east)
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import taichi as ti


@dataclass
class Event:
    """Completion handle for one kernel launch.

    Attributes:
        name: Name of the launched kernel (for debugging)
        complete: Whether a barrier has joined this launch
    """

    name: str = ""
    complete: bool = False


def NoneEvent() -> Event:
    """An already-complete event for work that was skipped."""
    return Event(name="none", complete=True)


@dataclass(frozen=True)
class Architecture:
    """A device on which kernels are launched.

    Attributes:
        name: Backend name ('cpu', 'cuda' or 'vulkan')
        synchronous: Whether launches complete before returning
    """

    name: str
    synchronous: bool = field(default=False, compare=False)

    def launch(self, kernel: Callable[..., Any], *args: Any) -> Event:
        """Launch a kernel and return its completion handle.

        Args:
            kernel: Taichi kernel (or any callable issuing kernels)
            *args: Kernel arguments

        Returns:
            Event joined by `wait`
        """
        kernel(*args)
        name = getattr(kernel, "__name__", type(kernel).__name__)
        return Event(name=name, complete=self.synchronous)

    def wait(self, *events: Event | None) -> None:
        """Block until all given launches have completed."""
        pending = [e for e in events if e is not None and not e.complete]
        if not pending:
            return
        ti.sync()
        for event in pending:
            event.complete = True


CPU = Architecture("cpu", synchronous=True)
GPU = Architecture("cuda")
VULKAN = Architecture("vulkan")


def architecture_for(backend: str) -> Architecture:
    """Get the Architecture for a backend name returned by init_taichi."""
    architectures = {"cpu": CPU, "cuda": GPU, "vulkan": VULKAN}
    if backend not in architectures:
        raise ValueError(
            f"Unknown backend: {backend}. Available: {list(architectures)}"
        )
    return architectures[backend]
