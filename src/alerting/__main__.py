from src.alerting.cli import main

main()
