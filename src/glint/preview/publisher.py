"""Progress publishing from the render loop to viewers.

A ProgressPublisher sits on top of an Accumulator. Viewers either pull a
snapshot whenever they like, or subscribe and receive pushed snapshots
through a SnapshotChannel.

Channels hold only the most recent snapshot. Publishing never blocks: a
snapshot that a slow viewer has not collected yet is replaced by the newer
one and counted as dropped. The render loop therefore runs at full speed no
matter how many viewers are attached or how slowly they draw.

Example:
    >>> from glint.core.accumulator import Accumulator
    >>> from glint.preview.publisher import ProgressPublisher
    >>> publisher = ProgressPublisher(Accumulator(8, 8))
    >>> channel = publisher.subscribe("terminal")
    >>> publisher.publish()
    >>> publisher.publish()
    >>> snap = channel.poll()
    >>> channel.dropped
    1
"""

from __future__ import annotations

import logging
import threading

from glint.core.accumulator import Accumulator, Snapshot

logger = logging.getLogger(__name__)


class SnapshotChannel:
    """Latest-value mailbox holding at most one pending snapshot.

    Attributes:
        name: Label used in log messages.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._cond = threading.Condition()
        self._latest: Snapshot | None = None
        self._dropped = 0
        self._received = 0
        self._closed = False

    def offer(self, snapshot: Snapshot) -> None:
        """Store a snapshot, replacing any that has not been collected."""
        with self._cond:
            if self._closed:
                return
            if self._latest is not None:
                self._dropped += 1
            self._latest = snapshot
            self._received += 1
            self._cond.notify_all()

    def get(self, timeout: float | None = None) -> Snapshot | None:
        """Wait for a snapshot and take it.

        Args:
            timeout: Seconds to wait. None waits until a snapshot arrives or
                the channel is closed.

        Returns:
            The newest pending snapshot, or None on timeout or if the channel
            was closed with nothing pending.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._latest is not None or self._closed, timeout)
            snapshot, self._latest = self._latest, None
            return snapshot

    def poll(self) -> Snapshot | None:
        """Take the pending snapshot without waiting, or None if there is none."""
        with self._cond:
            snapshot, self._latest = self._latest, None
            return snapshot

    def close(self) -> None:
        """Stop accepting snapshots and wake any waiting consumer."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def dropped(self) -> int:
        """Snapshots replaced before the consumer collected them."""
        with self._cond:
            return self._dropped

    @property
    def received(self) -> int:
        """Snapshots offered to this channel in total."""
        with self._cond:
            return self._received

    def __repr__(self) -> str:
        return f"SnapshotChannel(name={self.name!r}, received={self.received}, dropped={self.dropped})"


class ProgressPublisher:
    """Hands out snapshots of an accumulator, by pull or by push.

    Attributes:
        accumulator: Source of the snapshots.
        gamma: Display gamma applied to every snapshot.
    """

    def __init__(self, accumulator: Accumulator, gamma: float = 2.2) -> None:
        self.accumulator = accumulator
        self.gamma = gamma
        self._lock = threading.Lock()
        self._channels: list[SnapshotChannel] = []
        self._publish_count = 0

    def snapshot(self) -> Snapshot:
        """Pull a snapshot of the current accumulation state."""
        return self.accumulator.snapshot(self.gamma)

    def subscribe(self, name: str = "viewer") -> SnapshotChannel:
        """Attach a new push channel."""
        channel = SnapshotChannel(name)
        with self._lock:
            self._channels.append(channel)
        logger.debug("Viewer '%s' subscribed", name)
        return channel

    def unsubscribe(self, channel: SnapshotChannel) -> None:
        """Detach a channel and close it. Unknown channels are ignored."""
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)
        channel.close()
        logger.debug("Viewer '%s' unsubscribed", channel.name)

    def publish(self) -> Snapshot:
        """Take one snapshot and offer it to every subscribed channel.

        Returns:
            The published snapshot.
        """
        snapshot = self.snapshot()
        with self._lock:
            channels = list(self._channels)
            self._publish_count += 1
        for channel in channels:
            channel.offer(snapshot)
        return snapshot

    def close(self) -> None:
        """Close and detach every channel."""
        with self._lock:
            channels, self._channels = self._channels, []
        for channel in channels:
            channel.close()

    @property
    def publish_count(self) -> int:
        with self._lock:
            return self._publish_count

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._channels)
