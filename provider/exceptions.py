class ProviderError(Exception):
    """The scoring provider could not be reached or returned nothing usable."""

    def __init__(self, message: str, event_id: int = None):
        super().__init__(message)
        self.event_id = event_id
