from contentops.db.base_class import Base  # noqa: F401

# Import all the models here so that Base has them registered
# This file should NOT be imported by models.
from contentops.models.article import Article  # noqa: F401
from contentops.models.submission import Submission  # noqa: F401
from contentops.models.output import Output  # noqa: F401
from contentops.models.tag import OutputTag, Tag  # noqa: F401
from contentops.models.customization import BackgroundMusic, CaptionStyle, Character, VideoBumper, Voice  # noqa: F401
