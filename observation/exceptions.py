__all__ = (
    "ObservationError",
    "RegistryClosedError",
)


class ObservationError(Exception): ...


class RegistryClosedError(ObservationError): ...
