class LiveTranslatorError(Exception):
    pass


class CaptureError(LiveTranslatorError):
    pass


class PermissionDeniedError(CaptureError):
    pass


class NoDeviceError(CaptureError):
    pass


class ConnectionFailedError(LiveTranslatorError):
    pass


class TurnFinalizedError(LiveTranslatorError):
    pass


class TranslationAlreadyResolvedError(LiveTranslatorError):
    pass


class DuplicateTurnError(LiveTranslatorError):
    pass


class LanguageChangeRejectedError(LiveTranslatorError):
    pass


class UnsupportedLanguageError(LiveTranslatorError, ValueError):
    pass
