"""Deferred objects, push/pull streams, sinks, and the stream bridge."""

from payload_converter.streams.deferred import (
    CompositeBlob,
    DeferredObject,
    FileBlob,
    MemoryBlob,
    SlicedBlob,
)
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream, Subscription
from payload_converter.streams.sinks import BufferSink, ByteSink, FileObjectSink, FileSink
from payload_converter.streams.urls import open_url

__all__ = [
    "BufferSink",
    "ByteSink",
    "CompositeBlob",
    "DeferredObject",
    "FileBlob",
    "FileObjectSink",
    "FileSink",
    "MemoryBlob",
    "PullStream",
    "PushStream",
    "SlicedBlob",
    "Subscription",
    "open_url",
]
