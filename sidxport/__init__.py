
from .frame_buffer import FrameBuffer
from .dump import Dump
from .csv_dump import CsvDump
from .audio_renderer import AudioRenderer
from .wav_writer import WavWriter
from .export import AudioExport, TableExport, BinaryExport, ExportResult, select_export, run_export
from .sid_file import SidFile
from .sid_player import SidPlayer
from .capture import capture_frames
from .sidxport import SidXPort
