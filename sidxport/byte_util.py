# Common byte functions

import os
import tempfile

from sidxport.errors import SidXPortIOError


def little_endian_int(a_bytearray, signed=False):
    return int.from_bytes(a_bytearray, byteorder='little', signed=signed)


def big_endian_int(a_bytearray, signed=False):
    return int.from_bytes(a_bytearray, byteorder='big', signed=signed)


def hex_bytes(data):
    """
    Render bytes as space separated two digit uppercase hex

    :param data: bytes to render
    :type data: bytes
    :return: e.g. "00 1F FF"
    :rtype: str
    """
    return ' '.join('{:02X}'.format(b) for b in data)


def atomic_write(path_and_filename, write_fn, mode='wb'):
    """
    Write a file all-or-nothing

    write_fn receives an open file object pointing at a temporary file in the
    destination's directory.  Only after write_fn returns is the temporary
    file renamed over the destination, so a failure never leaves a partial
    destination file behind.

    :param path_and_filename: destination filename
    :type path_and_filename: str
    :param write_fn: callable taking the open temporary file
    :type write_fn: callable
    :param mode: file mode for the temporary file, defaults to 'wb'
    :type mode: str, optional
    """
    dest_dir = os.path.dirname(os.path.abspath(path_and_filename))
    try:
        fd, tmp_name = tempfile.mkstemp(prefix='.sidxport-', dir=dest_dir)
    except OSError as e:
        raise SidXPortIOError("Error: unable to create %s: %s" % (path_and_filename, e)) from e

    try:
        with os.fdopen(fd, mode) as out_file:
            write_fn(out_file)
        os.chmod(tmp_name, 0o644)  # mkstemp creates 0600
        os.replace(tmp_name, path_and_filename)
    except SidXPortIOError:
        _remove_if_present(tmp_name)
        raise
    except OSError as e:
        _remove_if_present(tmp_name)
        raise SidXPortIOError("Error: unable to write %s: %s" % (path_and_filename, e)) from e
    except BaseException:
        _remove_if_present(tmp_name)
        raise


def write_binary_file(path_and_filename, binary):
    """
    Write bytes to a file, all-or-nothing

    :param path_and_filename: destination filename
    :type path_and_filename: str
    :param binary: bytes to write
    :type binary: bytes
    """
    def write_all(out_file):
        written = out_file.write(binary)
        if written is not None and written != len(binary):
            raise SidXPortIOError("Error: short write (%d of %d bytes) to %s"
                                  % (written, len(binary), path_and_filename))

    atomic_write(path_and_filename, write_all)


def _remove_if_present(filename):
    if os.path.exists(filename):
        os.remove(filename)
