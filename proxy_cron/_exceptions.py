__all__ = ("ProxyCronError", "CrontabParseError", "FetchError")


class ProxyCronError(Exception): ...


class CrontabParseError(ProxyCronError): ...


class FetchError(ProxyCronError): ...
