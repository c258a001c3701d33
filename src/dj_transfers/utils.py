from django.utils.module_loading import import_string

from .conf import transfer_settings


def get_transfer_engine():
    """
    Returns the configured TransferEngine class.
    Override via settings: DJ_TRANSFERS['ENGINE_CLASS']
    Example:
        TransferEngine = get_transfer_engine()
        receipt = TransferEngine().execute_transfer(request)
    """
    return import_string(transfer_settings.ENGINE_CLASS)


def get_account_repository():
    """
    Returns the configured AccountRepository class.
    Override via settings: DJ_TRANSFERS['ACCOUNT_REPOSITORY_CLASS']
    """
    return import_string(transfer_settings.ACCOUNT_REPOSITORY_CLASS)


def get_transaction_repository():
    """
    Returns the configured TransactionRepository class.
    Override via settings: DJ_TRANSFERS['TRANSACTION_REPOSITORY_CLASS']
    """
    return import_string(transfer_settings.TRANSACTION_REPOSITORY_CLASS)
