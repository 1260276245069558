"""
Exceptions shared by the repository and service layers.
Routes translate these into HTTP status codes.
"""


class RepositoryError(Exception):
    """Base class for data access errors"""
    pass


class DuplicateError(RepositoryError):
    """A unique constraint would be violated (HTTP 409)"""

    def __init__(self, message, field=None):
        self.field = field
        super().__init__(message)


class CompanyNotFound(RepositoryError):
    """The requested company does not exist (HTTP 404)"""

    def __init__(self, company_id=None):
        self.company_id = company_id
        super().__init__('Company not found')


class CRMNotConfigured(RepositoryError):
    """The company has no Twenty CRM URL or API key (HTTP 400)"""

    def __init__(self, company_id=None):
        self.company_id = company_id
        super().__init__('Twenty CRM not configured for this company')
