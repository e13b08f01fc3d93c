# Helpers for building small SID files in memory (used by the unit tests)

from sidxport.sid_file import V2_DATA_OFFSET

TEST_LOAD_ADDRESS = 0x1000

# init: STA $D401 (subtune), LDA #$0F, STA $D418, LDA #$00, STA $FB, RTS
COUNTER_INIT = bytes([
    0x8d, 0x01, 0xd4,
    0xa9, 0x0f,
    0x8d, 0x18, 0xd4,
    0xa9, 0x00,
    0x85, 0xfb,
    0x60,
])

# play: INC $FB, LDA $FB, STA $D400, RTS
COUNTER_PLAY = bytes([
    0xe6, 0xfb,
    0xa5, 0xfb,
    0x8d, 0x00, 0xd4,
    0x60,
])

# init: voice 1 at freq $1CD6, attack 0 / sustain 15, sawtooth + gate, volume 15
TONE_INIT = bytes([
    0xa9, 0xd6, 0x8d, 0x00, 0xd4,   # FREQ_LO
    0xa9, 0x1c, 0x8d, 0x01, 0xd4,   # FREQ_HI
    0xa9, 0x00, 0x8d, 0x05, 0xd4,   # AD
    0xa9, 0xf0, 0x8d, 0x06, 0xd4,   # SR
    0xa9, 0x21, 0x8d, 0x04, 0xd4,   # CONTROL: sawtooth, gate on
    0xa9, 0x0f, 0x8d, 0x18, 0xd4,   # MODE_VOL
    0x60,
])

# play: RTS
TONE_PLAY = bytes([0x60])


def make_psid(init_code, play_code, load_address=TEST_LOAD_ADDRESS, num_subtunes=1,
              start_song=1, flags=0x0024, name=b'Test Tune', author=b'Tester',
              released=b'2024 Tests', play_address=None, magic=b'PSID', version=2):
    """
    Build a PSID file whose payload is init_code followed by play_code

    :param init_code: 6502 code for the init routine, placed at load_address
    :type init_code: bytes
    :param play_code: 6502 code for the play routine, placed right after init_code
    :type play_code: bytes
    :param flags: v2 flags, defaults to PAL clock and MOS8580
    :type flags: int
    :param play_address: overrides the play address (0 = installed by init)
    :type play_address: int, optional
    :return: SID file contents
    :rtype: bytes
    """
    if play_address is None:
        play_address = load_address + len(init_code)

    header = bytearray()
    header += magic
    header += version.to_bytes(2, 'big')
    header += V2_DATA_OFFSET.to_bytes(2, 'big')
    header += load_address.to_bytes(2, 'big')
    header += load_address.to_bytes(2, 'big')         # init address
    header += play_address.to_bytes(2, 'big')
    header += num_subtunes.to_bytes(2, 'big')
    header += start_song.to_bytes(2, 'big')
    header += (0).to_bytes(4, 'big')                  # speed: all VBI
    for text in (name, author, released):
        header += text[:32].ljust(32, b'\x00')
    header += flags.to_bytes(2, 'big')
    header += bytes([0, 0, 0, 0])                     # start page, page length, SID2, SID3

    return bytes(header) + bytes(init_code) + bytes(play_code)


def make_counter_psid(**kwargs):
    """
    A PSID whose play routine writes 1, 2, 3, ... to $D400 on successive calls,
    and whose init routine stores the subtune in $D401 and sets volume 15
    """
    return make_psid(COUNTER_INIT, COUNTER_PLAY, **kwargs)


def make_tone_psid(**kwargs):
    """
    A PSID that starts a sustained sawtooth on voice 1 and then does nothing
    """
    return make_psid(TONE_INIT, TONE_PLAY, **kwargs)
