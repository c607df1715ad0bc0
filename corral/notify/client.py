"""Base class for readiness notification clients."""


class Client:
    """Sends readiness and status messages to whatever supervises this process.

    Subclasses implement `send(**message)` for a particular transport.
    """

    def send(self, **message):
        raise NotImplementedError

    def ready(self, **message):
        """The process is ready to handle work."""
        self.send(ready=True, **message)

    def reloading(self, **message):
        message["ready"] = False
        message["reloading"] = True
        message.setdefault("status", "Reloading...")

        self.send(**message)

    def restarting(self, **message):
        message["ready"] = False
        message["reloading"] = True
        message.setdefault("status", "Restarting...")

        self.send(**message)

    def stopping(self, **message):
        message["stopping"] = True

        self.send(**message)

    def status(self, text: str, **message):
        self.send(status=text, **message)

    def error(self, text: str, **message):
        """Report an error condition, e.g. `error("Disk full", errno=28)`."""
        self.send(status=text, **message)
