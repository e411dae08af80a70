from app.db.models.review import Review  # noqa: F401
from app.db.models.question import Question  # noqa: F401
from app.db.models.content_report import ContentReport, ContentType, ReportReason  # noqa: F401
