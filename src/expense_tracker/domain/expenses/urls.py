EXPENSES_BASE = "/api/expenses"
EXPENSE_DETAIL = "/api/expenses/{expense_id:int}"
TAGS_BASE = "/api/tags"
TAG_DETAIL = "/api/tags/{tag_id:int}"
