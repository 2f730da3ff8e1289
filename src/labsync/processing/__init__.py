from .file_type import detect_file_type
from .text_acquirer import TextAcquirer, AcquiredText

__all__ = ['detect_file_type', 'TextAcquirer', 'AcquiredText']
