class UpscalerError(RuntimeError):
    pass


class UnsupportedPlatformError(UpscalerError):
    pass


class UpscalerNotFoundError(UpscalerError):
    pass


class ChecksumError(UpscalerError):
    pass


class NoInputError(UpscalerError):
    pass
