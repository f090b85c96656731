from .maintenance import *
from .dashboard import *
from .reports import *
from .ai import *
