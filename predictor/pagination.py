from rest_framework import pagination



# Pagination class for prediction history
class PredictionHistoryPagination(pagination.PageNumberPagination):
    page_size = 10  # Number of runs per page
    page_size_query_param = "page_size"  # Allow client to override
    max_page_size = 50
