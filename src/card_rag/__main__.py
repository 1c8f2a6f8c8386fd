from card_rag.cli import main

main()
