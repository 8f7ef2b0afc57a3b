import json
from datetime import date, datetime
from decimal import Decimal


class AuditEncoder(json.JSONEncoder):
    """
    JSON encoder for audit details
    Money values keep their exact decimal text; dates become ISO strings
    """
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)
