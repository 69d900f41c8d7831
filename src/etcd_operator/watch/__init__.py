"""Watch stream for EtcdCluster resources."""

from etcd_operator.watch.channel import Channel, ChannelClosed
from etcd_operator.watch.stream import (
    DecodeErrorPolicy,
    FrameDecoder,
    WatchStream,
    decode_event,
    watch_url,
)

__all__ = [
    "Channel",
    "ChannelClosed",
    "DecodeErrorPolicy",
    "FrameDecoder",
    "WatchStream",
    "decode_event",
    "watch_url",
]
