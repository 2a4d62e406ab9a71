from contentops.models.article import Article
from contentops.models.customization import BackgroundMusic, CaptionStyle, Character, VideoBumper, Voice
from contentops.models.output import Output
from contentops.models.submission import Submission
from contentops.models.tag import OutputTag, Tag

__all__ = [
    "Article",
    "Submission",
    "Output",
    "Tag",
    "OutputTag",
    "Character",
    "CaptionStyle",
    "BackgroundMusic",
    "VideoBumper",
    "Voice",
]
