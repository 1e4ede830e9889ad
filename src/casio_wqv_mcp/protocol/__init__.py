"""Protocol layer: framing, frame sync, handshake and bulk transfer."""

from .framing import Frame, build_frame, parse_frame
from .commands import Addr, Command
from .session import ProtocolState
from .download import DownloadResult, download_image
