from rest_framework import status
from rest_framework.exceptions import APIException


class ProgressError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Ошибка учета прогресса'
    default_code = 'progress_error'


class ValidationError(ProgressError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Некорректные входные данные'
    default_code = 'invalid'


class NotFoundError(ProgressError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Объект не найден'
    default_code = 'not_found'


class StorageError(ProgressError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Ошибка хранилища прогресса'
    default_code = 'storage_error'


class DuplicateSeedError(ProgressError):
    """Строка прогресса за период уже существует.

    Подавляется при идемпотентном заполнении периода нулями и наружу не выходит.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Прогресс за период уже существует'
    default_code = 'duplicate_seed'
