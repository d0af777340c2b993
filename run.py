"""
Ponto de entrada da aplicação.

O .env precisa ser carregado antes de importar o pacote, porque a
configuração é lida das variáveis de ambiente no create_app().
"""

from dotenv import load_dotenv

load_dotenv()

from storefront import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    # debug só em desenvolvimento; em produção o app é servido por WSGI
    app.run(port=app.config["PORT"], debug=app.config["ENVIRONMENT"] == "development")
