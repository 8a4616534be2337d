from drf_spectacular.utils import OpenApiResponse


BAD_REQUEST_RESPONSE = OpenApiResponse(
   response={
       'type': 'object',
       'properties': {
           'detail': {'type': 'string', 'example': 'Значение increment_by должно быть целым числом'}
       }
   },
   description='Bad Request'
)

UNAUTHORIZED_RESPONSE = OpenApiResponse(
   response={
       'type': 'object',
       'properties': {
           'detail': {'type': 'string', 'example': 'Учетные данные не были предоставлены.'}
       }
   },
   description='Unauthorized'
)

FORBIDDEN_RESPONSE = OpenApiResponse(
   response={
       'type': 'object',
       'properties': {
           'detail': {'type': 'string', 'example': 'У вас недостаточно прав для выполнения данного действия.'}
       }
   },
   description='Forbidden'
)

NOT_FOUND_RESPONSE = OpenApiResponse(
   response={
       'type': 'object',
       'properties': {
           'detail': {'type': 'string', 'example': 'Подцель с ID 42 не найдена'}
       }
   },
   description='Not Found'
)

STORAGE_ERROR_RESPONSE = OpenApiResponse(
   response={
       'type': 'object',
       'properties': {
           'detail': {'type': 'string', 'example': 'Ошибка хранилища прогресса'}
       }
   },
   description='Service Unavailable'
)

INTERNAL_SERVER_ERROR = OpenApiResponse(
   response={
       'type': 'string'
   },
   description='Internal Server Error'
)
