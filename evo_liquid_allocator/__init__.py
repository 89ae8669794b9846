from .matching import *
from .robotools_extensions import *
