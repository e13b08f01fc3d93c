# Table export: one text line per frame
#
# Frame, R00, R01, R02, ..., R24
# 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 15
# 1, ...
#
# The frame number is always decimal.  Register values are either decimal or
# two digit uppercase hex (no prefix), chosen once for the whole table.

import csv
import io

from sidxport import constants
from sidxport.base import SidXPortIO
from sidxport.errors import SidXPortIOError, SidXPortValueError
from sidxport.frame_buffer import FrameBuffer

VALUE_FORMATS = {
    'hex': '{:02X}',
    'decimal': '{:d}',
}


class CsvDump(SidXPortIO):
    def __init__(self):
        SidXPortIO.__init__(self)
        self.options_with_defaults = dict(
            csv_format='decimal',   # 'hex' or 'decimal' register values
            verbose=False,          # True = print what was written
        )
        self.set_options(**self.options_with_defaults)

    def validate_option(self, op, val):
        if op == 'csv_format' and val not in constants.CSV_FORMATS:
            raise SidXPortValueError('Error: csv_format must be one of %s, got "%s"'
                                     % (', '.join(constants.CSV_FORMATS), val))

    def format_line(self, frame_index, snapshot):
        value_format = VALUE_FORMATS[self.get_option('csv_format')]
        values = ['%d' % frame_index] + [value_format.format(v) for v in snapshot]
        return constants.CSV_SEPARATOR.join(values) + '\n'

    def lines(self, frame_buffer, frame_count=None):
        """
        Yield the header line, then one line per frame

        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :param frame_count: frames to include, defaults to all of them
        :type frame_count: int, optional
        """
        if frame_count is None:
            frame_count = frame_buffer.frame_count
        if not 0 <= frame_count <= frame_buffer.frame_count:
            raise SidXPortValueError("Error: frame count %d out of range (0 to %d)"
                                     % (frame_count, frame_buffer.frame_count))

        yield constants.CSV_HEADER
        for frame_index in range(frame_count):
            yield self.format_line(frame_index, frame_buffer.get_frame(frame_index))

    def to_csv_str(self, frame_buffer, frame_count=None, **kwargs):
        """
        Render the table as a string

        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :param frame_count: frames to include, defaults to all of them
        :type frame_count: int, optional
        :return: header line plus one line per frame
        :rtype: str

        :keyword options:
            * **csv_format** (str = 'decimal') - 'hex' or 'decimal' register values
        """
        self.set_options(**kwargs)
        return ''.join(self.lines(frame_buffer, frame_count))

    def to_file(self, frame_buffer, filename, frame_count=None, **kwargs):
        """
        Write the table line by line.  A failure part way through leaves the
        lines already written in place.

        :param frame_buffer: captured frames
        :type frame_buffer: FrameBuffer
        :param filename: output filename
        :type filename: str
        :param frame_count: frames to include, defaults to all of them
        :type frame_count: int, optional
        :return: bytes written
        :rtype: int
        """
        self.set_options(**kwargs)
        written = 0
        line_count = 0
        try:
            with open(filename, 'w', newline='') as out_file:
                for line in self.lines(frame_buffer, frame_count):
                    out_file.write(line)
                    written += len(line)
                    line_count += 1
        except OSError as e:
            raise SidXPortIOError("Error: unable to write %s: %s" % (filename, e)) from e

        self.log("Wrote %s table of %d frames to %s"
                 % (self.get_option('csv_format'), line_count - 1, filename))
        return written

    @classmethod
    def parse_csv_str(cls, text, csv_format='decimal'):
        """
        Read a table back into a frame buffer

        :param text: table text, including the header line
        :type text: str
        :param csv_format: 'hex' or 'decimal', how the register values were written
        :type csv_format: str
        :return: the frames
        :rtype: FrameBuffer
        """
        if csv_format not in constants.CSV_FORMATS:
            raise SidXPortValueError('Error: unknown csv_format "%s"' % csv_format)
        base = 16 if csv_format == 'hex' else 10

        rows = list(csv.reader(io.StringIO(text), skipinitialspace=True))
        if not rows or ', '.join(rows[0]) + '\n' != constants.CSV_HEADER:
            raise SidXPortValueError("Error: missing table header")

        binary = bytearray()
        for line_num, row in enumerate(rows[1:]):
            if len(row) != constants.SID_REGISTER_COUNT + 1:
                raise SidXPortValueError("Error: line %d has %d fields" % (line_num + 2, len(row)))
            try:
                frame_index = int(row[0])
                binary.extend(int(v, base) for v in row[1:])
            except ValueError as e:
                raise SidXPortValueError("Error: bad value on line %d" % (line_num + 2)) from e
            if frame_index != line_num:
                raise SidXPortValueError("Error: line %d is frame %d, expected %d"
                                         % (line_num + 2, frame_index, line_num))

        return FrameBuffer.from_bytes(bytes(binary))
