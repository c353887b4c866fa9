"""
PDF Services Client - метаданные пакета

Общая информация о продукте, версия используется в User-Agent.
"""

__product__ = "PDF Services Client"
__version__ = "0.1.0"
__description__ = "Клиент для пакетной обработки документов на удалённом PDF-сервисе"
__license__ = "MIT"
__status__ = "Alpha"
__python_requires__ = ">=3.11"


def get_user_agent():
    """Строка User-Agent для HTTP запросов"""
    return f"pdf-services-client/{__version__}"
