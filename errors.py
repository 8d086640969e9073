class MinuteScribeError(Exception):
    """Error con un mensaje listo para mostrar al usuario."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MicrophonePermissionError(MinuteScribeError, PermissionError):
    status_code = 403


class InvalidInputError(MinuteScribeError, ValueError):
    status_code = 400


class EmptyInputError(MinuteScribeError, ValueError):
    status_code = 400


class BusyError(MinuteScribeError):
    status_code = 409


class GatewayError(MinuteScribeError):
    status_code = 502


class TranscriptionError(GatewayError):
    pass


class SummarizationError(GatewayError):
    pass


class SpeechSynthesisError(GatewayError):
    pass
