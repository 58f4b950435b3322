class Translator:
    def __init__(self) -> None:
        self.language = "pt"
        self.translations = {
            "pt": {},
            "en": {
                "Painel": "Dashboard",
                "Análise": "Analysis",
                "Exercícios": "Exercises",
                "Metas": "Goals",
                "Perfil": "Profile",
                "Semana": "Week",
                "Mês": "Month",
                "Ano": "Year",
                "Personalizado": "Custom",
                "Categoria": "Category",
                "Janela de Tempo": "Time Window",
                "Novo Exercício": "New Exercise",
                "Nova Meta": "New Goal",
                "Salvar": "Save",
                "Excluir": "Delete",
                "Dicas do Coach": "Coach Tips",
                "Exportar CSV": "Export CSV",
                "Gerar PDF": "Print Report",
                "Log de Atividade Recente": "Recent Activity Log",
                "Nenhum log detalhado disponível para este ciclo.": "No detailed log for this cycle.",
                "Nenhum dado encontrado para este intervalo.": "No data found for this range.",
            },
        }

    def set_language(self, lang: str) -> None:
        self.language = lang

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)

translator = Translator()
