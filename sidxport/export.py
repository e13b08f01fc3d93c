# Export dispatch: exactly one of binary, table, or audio output per run
#
# Precedence when several outputs are requested: audio, then table, then
# binary (the default).

from dataclasses import dataclass
from typing import Optional

from sidxport import constants
from sidxport.audio_renderer import AudioRenderer
from sidxport.base import log_message
from sidxport.csv_dump import CsvDump
from sidxport.dump import Dump
from sidxport.errors import SidXPortValueError
from sidxport.wav_writer import WavWriter


@dataclass(frozen=True)
class BinaryExport:
    mode = 'binary'


@dataclass(frozen=True)
class TableExport:
    csv_format: str = 'decimal'
    mode = 'table'

    def __post_init__(self):
        if self.csv_format not in constants.CSV_FORMATS:
            raise SidXPortValueError('Error: unknown table format "%s"' % self.csv_format)


@dataclass(frozen=True)
class AudioExport:
    wav_format: str = 'stereo'
    chip_model: str = constants.DEFAULT_CHIP_MODEL
    sampling_rate: int = constants.DEFAULT_SAMPLING_RATE
    frame_rate: int = constants.DEFAULT_FRAME_RATE
    arch: str = constants.DEFAULT_ARCH
    mode = 'audio'

    def __post_init__(self):
        if self.wav_format not in constants.WAV_FORMATS:
            raise SidXPortValueError('Error: unknown wav format "%s"' % self.wav_format)
        if self.chip_model not in constants.CHIP_MODELS:
            raise SidXPortValueError('Error: unknown chip model "%s"' % self.chip_model)


@dataclass(frozen=True)
class ExportResult:
    path: str
    mode: str
    bytes_written: int
    frames_rendered: Optional[int] = None


def select_export(wav_enabled=False, wav_format='stereo', csv_enabled=False, csv_format='decimal',
                  chip_model=constants.DEFAULT_CHIP_MODEL,
                  sampling_rate=constants.DEFAULT_SAMPLING_RATE,
                  frame_rate=constants.DEFAULT_FRAME_RATE, arch=constants.DEFAULT_ARCH):
    """
    Pick the one export to run

    :param wav_enabled: audio output requested
    :type wav_enabled: bool
    :param wav_format: 'mono' or 'stereo'
    :type wav_format: str
    :param csv_enabled: table output requested
    :type csv_enabled: bool
    :param csv_format: 'hex' or 'decimal'
    :type csv_format: str
    :return: the selected export
    :rtype: AudioExport, TableExport, or BinaryExport
    """
    if wav_enabled:
        return AudioExport(wav_format, chip_model, sampling_rate, frame_rate, arch)
    if csv_enabled:
        return TableExport(csv_format)
    return BinaryExport()


def run_export(export, frame_buffer, output_filename, verbose=False):
    """
    Run the selected export

    :param export: from select_export()
    :type export: AudioExport, TableExport, or BinaryExport
    :param frame_buffer: captured frames
    :type frame_buffer: FrameBuffer
    :param output_filename: output file; for audio, None writes 'sidxport-out.wav'
    :type output_filename: str
    :param verbose: print progress, defaults to False
    :type verbose: bool, optional
    :return: where the output went and how much was written
    :rtype: ExportResult
    """
    if isinstance(export, AudioExport):
        return export_audio(export, frame_buffer, output_filename, verbose)

    if not output_filename:
        raise SidXPortValueError("Error: an output filename is required")

    if isinstance(export, TableExport):
        csv_dump = CsvDump()
        written = csv_dump.to_file(frame_buffer, output_filename,
                                   csv_format=export.csv_format, verbose=verbose)
        return ExportResult(output_filename, export.mode, written)

    if isinstance(export, BinaryExport):
        written = Dump().to_file(frame_buffer, output_filename, verbose=verbose)
        return ExportResult(output_filename, export.mode, written)

    raise SidXPortValueError("Error: unknown export type %s" % type(export).__name__)


def export_audio(export, frame_buffer, output_filename, verbose):
    renderer = AudioRenderer(export.chip_model, export.sampling_rate, export.frame_rate, export.arch)
    if verbose:
        log_message("Rendering %d seconds of audio (%s)"
                    % (renderer.duration_seconds(frame_buffer.frame_count), export.chip_model))
    pcm, frames_rendered = renderer.render(frame_buffer)

    wav_writer = WavWriter(output_filename, export.sampling_rate)
    wav_writer.set_mono_buffer(pcm)
    if export.wav_format == 'mono':
        written = wav_writer.write_mono()
    else:
        written = wav_writer.write_stereo()

    if verbose:
        log_message("Wrote %s WAV (%d frames rendered) to %s"
                    % (export.wav_format, frames_rendered, wav_writer.filename))
    return ExportResult(wav_writer.filename, export.mode, written, frames_rendered)
