'''
Exceptions for the sidxport library
'''


class SidXPortException(Exception):
    """
    Generic base class for SidXPort exceptions
    """
    pass


class SidXPortValueError(SidXPortException, ValueError):
    """
    Value error (malformed input, bad option, violated precondition)
    """
    pass


class SidXPortContentError(SidXPortException):
    """
    Content error (valid file, but content that can't be handled)
    """
    pass


class SidXPortAllocationError(SidXPortException, MemoryError):
    """
    A frame buffer or PCM buffer could not be allocated
    """
    pass


class SidXPortIOError(SidXPortException, IOError):
    """
    IO error while creating or writing an output file
    """
    pass


class SidXPortNotImplemented(SidXPortException):
    """
    Not implemented error
    """
    pass
