"""
Plain Python demo showing the docsink write path.

This example demonstrates:
1. Declaring field mappings (literal, timestamp, pattern)
2. Buffered delivery with flush on capacity and on end-of-batch
3. Plugging the sink into the standard logging module

A print-only store stands in for Solr, so no server is needed. To target a
real Solr core, swap PrintingStore for docsink.SolrConnectionProvider.
"""

import logging

from docsink import (
    ConnectionProvider,
    DocumentAppender,
    DocumentStoreHandler,
    Handle,
    configure,
    create_field_spec,
)


class PrintingHandle(Handle):
    """Handle that prints instead of talking to a server."""

    def __init__(self, number):
        self.number = number

    def submit(self, document):
        print(f"  [store] connection {self.number}: add {dict(document)}")

    def commit(self):
        print(f"  [store] connection {self.number}: commit")

    def release(self):
        print(f"  [store] connection {self.number}: released")


class PrintingStore(ConnectionProvider):
    """Mock document store for demonstration."""

    def __init__(self):
        self.connections = 0

    def acquire(self):
        self.connections += 1
        print(f"  [store] connection {self.connections}: opened")
        return PrintingHandle(self.connections)

    def __str__(self):
        return "PrintingStore"


def main():
    fields = [
        create_field_spec("application", literal="billing"),
        create_field_spec("timestamp", is_timestamp=True),
        create_field_spec("level", pattern="%(levelname)s"),
        create_field_spec("message", pattern="%(message)s"),
        create_field_spec("user", pattern="%(user)s"),
    ]
    manager = configure("demo", 3, PrintingStore(), fields)
    handler = DocumentStoreHandler(DocumentAppender("demo-appender", manager))

    log = logging.getLogger("billing")
    log.setLevel(logging.INFO)
    log.addHandler(handler)

    print("Example 1: buffer of 3, nothing is written until it fills")
    for i in range(3):
        log.info("invoice %d created", i, extra={"user": "alice"})

    print("\nExample 2: end-of-batch flushes early")
    log.warning("payment retried", extra={"user": "bob", "end_of_batch": True})

    print("\nExample 3: missing attributes render as empty values")
    log.info("no user here")
    handler.close()


if __name__ == "__main__":
    main()
