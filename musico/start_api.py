# -*- coding: UTF-8 -*-

import uvicorn

from musico.api.utils.settings import get_api_host, get_api_port


def main():
    uvicorn.run("musico.api_app:app",
                host=get_api_host(),
                port=get_api_port(),
                forwarded_allow_ips="*",  # Permettre les en-têtes forwarded
                proxy_headers=True)


if __name__ == "__main__":
    main()
