from sidxport.errors import SidXPortValueError, SidXPortNotImplemented
from sidxport.constants import LOG_PREFIX


def log_message(message):
    print("%s %s" % (LOG_PREFIX, message))


class SidXPortBase:
    def __init__(self):
        self._options = {}
        self.options_with_defaults = {}

    def get_option(self, arg, default=None):
        """
        Get an option

        :param arg: option name
        :type arg: str
        :param default: default value
        :type default: type of option
        :return: value of option
        :rtype: option type
        """
        if arg in self._options:
            return self._options[arg]
        return default

    def get_options(self):
        """
        Get a dictionary of all current options

        :return: options
        :rtype: dict
        """
        return self._options

    def set_options(self, **kwargs):
        """
        Sets options for this module, with validation when required

        Note: set_options gets called on __init__ (setting defaults), and a 2nd
        time if options are to be set after object instantiation.

        :param kwargs: keyword arguments for options
        :type kwargs: keyword arguments
        """
        for op, val in kwargs.items():
            op = op.lower()  # All option names must be lowercase
            if op not in self.options_with_defaults:
                raise SidXPortValueError('Error: Unexpected option "%s"' % (op))
            self.validate_option(op, val)
            self._options[op] = val

    def validate_option(self, op, val):
        """
        Hook for subclasses to reject bad option values

        :param op: option name (lowercase)
        :type op: str
        :param val: proposed value
        """
        pass

    def log(self, message):
        if self.get_option('verbose', False):
            log_message(message)


class SidXPortIO(SidXPortBase):
    """
    Base class for the export formats.  Each takes a FrameBuffer and writes it
    somewhere.
    """
    def __init__(self):
        SidXPortBase.__init__(self)

    def to_file(self, frame_buffer, filename, **kwargs):
        """
        Writes a frame buffer to a file

        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :param filename: output filename
        :type filename: str
        :param kwargs: Keyword options for the particular I/O class
        """
        raise SidXPortNotImplemented("Not implemented")
