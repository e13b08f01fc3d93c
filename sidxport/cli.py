# Command line front end
#
# sidxport <SID file> <output file> <frames> [--debug] [--csv-dec] [--csv-hex]
#          [--wav-mono] [--wav-stereo] [--subtune N] [--chip-model MODEL]
#          [--sampling-rate HZ] [--quiet]

import argparse
import sys

from sidxport import constants
from sidxport.base import log_message
from sidxport.errors import SidXPortException
from sidxport.sidxport import SidXPort


class _SetFormat(argparse.Action):
    """
    --csv-* and --wav-* flags: enable the output and set its format.  When a
    flag of the same kind is repeated, the last one wins.
    """
    def __init__(self, option_strings, dest, kind, fmt, **kwargs):
        self.kind = kind
        self.fmt = fmt
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        setattr(namespace, '%s_enabled' % self.kind, True)
        setattr(namespace, '%s_format' % self.kind, self.fmt)


def positive_int(text):
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError('"%s" is not an integer' % text)
    if value <= 0:
        raise argparse.ArgumentTypeError('"%s" must be a positive integer' % text)
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        prog='sidxport',
        description="Capture a SID tune's per-frame SID register values and export them "
                    "as a binary dump, a table, or a WAV file.")
    parser.add_argument('--version', action='version',
                        version='%(prog)s ' + constants.SIDXPORT_VERSION)
    parser.add_argument('sid_in_file', help='SID filename to play')
    parser.add_argument('out_file', help='output filename')
    parser.add_argument('frames', type=positive_int, help='number of frames to capture')
    parser.add_argument('--debug', action='store_true',
                        help='print every frame\'s registers as hex')
    parser.add_argument('--csv-dec', action=_SetFormat, kind='csv', fmt='decimal',
                        dest='csv_format', help='export a table with decimal values')
    parser.add_argument('--csv-hex', action=_SetFormat, kind='csv', fmt='hex',
                        dest='csv_format', help='export a table with hex values')
    parser.add_argument('--wav-mono', action=_SetFormat, kind='wav', fmt='mono',
                        dest='wav_format', help='render a mono WAV file')
    parser.add_argument('--wav-stereo', action=_SetFormat, kind='wav', fmt='stereo',
                        dest='wav_format', help='render a stereo WAV file')
    parser.add_argument('--subtune', type=int, default=None,
                        help='subtune to play (zero-indexed), defaults to the start song')
    parser.add_argument('--chip-model', choices=constants.CHIP_MODELS,
                        default=constants.DEFAULT_CHIP_MODEL,
                        help='SID model for WAV rendering (default %(default)s)')
    parser.add_argument('--sampling-rate', type=positive_int,
                        default=constants.DEFAULT_SAMPLING_RATE,
                        help='WAV sampling rate (default %(default)s)')
    parser.add_argument('--quiet', action='store_true', help='only print errors')
    parser.set_defaults(csv_enabled=False, csv_format='decimal',
                        wav_enabled=False, wav_format='stereo')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        sid_x_port = SidXPort(
            sid_in_filename=args.sid_in_file,
            frames=args.frames,
            subtune=args.subtune,
            chip_model=args.chip_model,
            sampling_rate=args.sampling_rate,
            csv_enabled=args.csv_enabled,
            csv_format=args.csv_format,
            wav_enabled=args.wav_enabled,
            wav_format=args.wav_format,
            debug=args.debug,
            verbose=not args.quiet,
        )
        sid_x_port.load()
        result = sid_x_port.export(args.out_file)
    except SidXPortException as e:
        print("%s %s" % (constants.LOG_PREFIX, e), file=sys.stderr)
        return 1

    if not args.quiet:
        log_message("Done: %s export, %d bytes written to %s"
                    % (result.mode, result.bytes_written, result.path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
