"""Settings components.

Every component reads its values through ``config``, which looks up
environment variables first and then ``config/.env`` or
``config/settings.ini`` in the project root.
"""

from pathlib import PurePath

from decouple import AutoConfig

# Project root: fragstore/settings/components/__init__.py -> ../../..
BASE_DIR = PurePath(__file__).parent.parent.parent.parent

config = AutoConfig(search_path=BASE_DIR.joinpath('config'))
